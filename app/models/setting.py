from sqlalchemy import Column, String, DateTime, JSON, func
from app.db.base_class import Base


class EngineSetting(Base):
    """Runtime override of one engine tunable (see app.engine.config)."""

    __tablename__ = "engine_settings"

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
