class EngineError(Exception):
    """Base class for errors raised by the rating and selection engine."""


class InsufficientPoolError(EngineError):
    """Fewer than two eligible items are available for a comparison."""

    def __init__(self, available: int):
        self.available = available
        super().__init__(
            f"Not enough eligible items for a comparison (found {available}, need 2)"
        )


class InvalidVoteError(EngineError):
    """A vote submission is malformed and was rejected before any update."""


class ItemNotFoundError(EngineError):
    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item not found: {item_id}")


class ConfigurationError(EngineError):
    """Engine configuration is outside its valid ranges."""


class IdempotencyConflictError(EngineError):
    """An idempotency key was reused for a different vote or voter."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Idempotency key already used for a different vote: {key}")
