"""
Cached engine configuration snapshots.

Precedence, lowest to highest: engine defaults, ``settings.ENGINE_OVERRIDES``,
rows of the ``engine_settings`` table. A snapshot is reused for
``settings.SETTINGS_CACHE_TTL_SECONDS`` and dropped as soon as the stored
overrides change through this module.
"""
import threading
import time
from typing import Any, Callable, Dict, Optional

import structlog
from sqlalchemy.orm import Session

from app import crud
from app.core.config import settings
from app.engine.config import EngineConfig
from app.engine.exceptions import ConfigurationError

logger = structlog.get_logger()


class EngineConfigStore:
    def __init__(
        self,
        ttl_seconds: float,
        base_overrides: Optional[Dict[str, Any]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.base_overrides = dict(base_overrides or {})
        self._clock = clock
        self._lock = threading.Lock()
        self._snapshot: Optional[EngineConfig] = None
        self._loaded_at: Optional[float] = None

    def build(self, stored_overrides: Dict[str, Any]) -> EngineConfig:
        """Validate defaults + base overrides + ``stored_overrides``."""
        merged = {**self.base_overrides, **stored_overrides}
        return EngineConfig.from_overrides(merged)

    def get(self, db: Session) -> EngineConfig:
        with self._lock:
            now = self._clock()
            if (
                self._snapshot is not None
                and self._loaded_at is not None
                and now - self._loaded_at < self.ttl_seconds
            ):
                return self._snapshot

            stored = crud.engine_setting.get_overrides(db)
            try:
                snapshot = self.build(stored)
            except ConfigurationError as exc:
                if self._snapshot is None:
                    raise
                # Keep serving the last good snapshot
                logger.error("engine_config_rejected", error=str(exc))
                self._loaded_at = now
                return self._snapshot

            if snapshot != self._snapshot:
                logger.info("engine_config_reloaded", overrides=sorted(stored))
            self._snapshot = snapshot
            self._loaded_at = now
            return snapshot

    def update(self, db: Session, values: Dict[str, Any]) -> EngineConfig:
        """
        Validate and store runtime overrides.

        Nothing is written if the resulting configuration is invalid.
        """
        stored = crud.engine_setting.get_overrides(db)
        candidate = self.build({**stored, **values})

        # Store what the validated model normalized, not the raw input
        flat = candidate.flatten()
        crud.engine_setting.upsert_many(db, values={key: flat[key] for key in values})
        logger.info("engine_config_updated", keys=sorted(values))
        self.invalidate()
        return candidate

    def reset(self, db: Session) -> EngineConfig:
        deleted = crud.engine_setting.clear(db)
        logger.info("engine_config_reset", removed=deleted)
        self.invalidate()
        return self.build({})

    def invalidate(self) -> None:
        with self._lock:
            self._snapshot = None
            self._loaded_at = None


config_store = EngineConfigStore(
    ttl_seconds=settings.SETTINGS_CACHE_TTL_SECONDS,
    base_overrides=settings.ENGINE_OVERRIDES,
)
