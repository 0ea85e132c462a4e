"""Exception types for the quality-control core."""


class GatekeeperError(Exception):
    """Base class for Gatekeeper errors."""


class GuardError(GatekeeperError):
    """An unexpected failure while evaluating a guard verdict."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class SnapshotStoreError(GatekeeperError):
    """Routing snapshot could not be read or written."""
