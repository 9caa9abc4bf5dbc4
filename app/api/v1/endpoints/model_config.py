from typing import Any, Dict
from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api import deps
from app.engine.config import SETTING_SECTIONS
from app.engine.exceptions import ConfigurationError
from app.services.config_store import config_store

router = APIRouter()


@router.get("/")
def get_model_config(
    *,
    db: Session = Depends(deps.get_db),
) -> Any:
    """
    Effective engine configuration (defaults merged with overrides).
    """
    try:
        config = config_store.get(db)
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=500, detail=f"Engine configuration is invalid: {exc}"
        )
    return config.flatten()


@router.put("/", dependencies=[Depends(deps.require_admin)])
def update_model_config(
    *,
    db: Session = Depends(deps.get_db),
    config: Dict[str, Any] = Body(...),
) -> Any:
    """
    Override engine parameters at runtime. Requires the admin key.

    Takes flat `{setting: value}` pairs, for example
    `{"upset_threshold": 150, "recency_tiers": [[5, 0.2], [15, 0.6]]}`.
    The whole resulting configuration is validated first; nothing is stored
    if any value is out of range (e.g. familiarity weights not summing to 1).
    """
    unknown = sorted(key for key in config if key not in SETTING_SECTIONS)
    if unknown:
        raise HTTPException(
            status_code=400, detail=f"Unknown settings: {', '.join(unknown)}"
        )
    try:
        updated = config_store.update(db, config)
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return {
        "message": "Model config updated",
        "effective_from": datetime.now(timezone.utc).isoformat(),
        "config": updated.flatten(),
    }


@router.delete("/", dependencies=[Depends(deps.require_admin)])
def reset_model_config(
    *,
    db: Session = Depends(deps.get_db),
) -> Any:
    """
    Drop all runtime overrides. Requires the admin key.
    """
    try:
        config = config_store.reset(db)
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return {"message": "Model config reset", "config": config.flatten()}
