from typing import Any, Dict

from sqlalchemy.orm import Session

from app.models.setting import EngineSetting


class CRUDEngineSetting:
    def get_overrides(self, db: Session) -> Dict[str, Any]:
        return {row.key: row.value for row in db.query(EngineSetting).all()}

    def upsert_many(self, db: Session, *, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            row = db.query(EngineSetting).filter(EngineSetting.key == key).first()
            if row is None:
                row = EngineSetting(key=key, value=value)
            else:
                row.value = value
            db.add(row)
        db.commit()

    def clear(self, db: Session) -> int:
        deleted = db.query(EngineSetting).delete(synchronize_session=False)
        db.commit()
        return deleted


engine_setting = CRUDEngineSetting()
