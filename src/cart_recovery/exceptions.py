"""Error taxonomy shared by the API, the scanner and the worker."""


class CartRecoveryError(Exception):
    """Base class for all service errors."""

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(CartRecoveryError):
    """Bad caller input. Never retried."""


class NotFoundError(CartRecoveryError):
    """A referenced record does not exist."""


class PersistenceError(CartRecoveryError):
    """A storage operation failed."""


class GenerationError(CartRecoveryError):
    """The text-generation call failed or returned nothing usable."""


class DeliveryError(CartRecoveryError):
    """The SMS provider rejected or did not confirm the message."""


class SchedulerAbort(CartRecoveryError):
    """The initial event fetch for a scan tick failed."""
