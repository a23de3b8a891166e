"""Error types raised while configuring subscriptions and channels."""


class BusError(Exception):
    """Base error for message bus operations."""
    pass


class InvalidArgument(BusError, ValueError):
    """A configuration value was rejected before it reached the registry."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"{operation}: {message}")
