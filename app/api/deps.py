import secrets
from typing import Generator, Optional

import structlog
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import SessionLocal
from app.engine.config import EngineConfig
from app.engine.exceptions import ConfigurationError
from app.services.config_store import config_store
from app.services.voting import Identity


def get_db() -> Generator:
    try:
        db = SessionLocal()
        yield db
    finally:
        db.close()


def get_identity(
    x_session_id: Optional[str] = Header(None, max_length=128),
    x_user_id: Optional[str] = Header(None, max_length=128),
) -> Identity:
    """
    Voter identity as issued upstream. Both values are opaque; a request
    without either is treated as anonymous (no personalization).
    """
    identity = Identity(user_id=x_user_id or None, session_id=x_session_id or None)
    structlog.contextvars.bind_contextvars(
        user_id=identity.user_id, session_id=identity.session_id
    )
    return identity


def get_engine_config(db: Session = Depends(get_db)) -> EngineConfig:
    try:
        return config_store.get(db)
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=500, detail=f"Engine configuration is invalid: {exc}"
        )


def require_admin(x_admin_key: Optional[str] = Header(None)) -> None:
    if not x_admin_key or not secrets.compare_digest(
        x_admin_key, settings.ADMIN_API_KEY
    ):
        raise HTTPException(status_code=403, detail="Admin key required")
