"""Custom exceptions for potsplit."""


class PotsplitError(Exception):
    """Base exception for all potsplit errors."""

    pass


class ConfigurationError(PotsplitError):
    """Raised when configuration is invalid or missing."""

    pass


class ShareRatioError(ConfigurationError):
    """Raised when the shared-cost split does not add up to a whole."""

    pass


class ValidationError(PotsplitError):
    """Base class for rejected user input."""

    pass


class InvalidTransactionError(ValidationError):
    """Raised when an expense or deposit has a bad amount or description."""

    pass


class DuplicateOwnerError(ValidationError):
    """Raised when an owner name already exists in the account."""

    def __init__(self, name: str, message: str | None = None):
        self.name = name
        super().__init__(message or f"Owner '{name}' already exists")


class DuplicateAccountError(ValidationError):
    """Raised when an account name is already taken."""

    def __init__(self, name: str, message: str | None = None):
        self.name = name
        super().__init__(message or f"Account '{name}' already exists")


class RecordNotFoundError(PotsplitError):
    """Raised when a record is missing or belongs to another account."""

    def __init__(self, kind: str, record_id: int, message: str | None = None):
        self.kind = kind
        self.record_id = record_id
        super().__init__(
            message or f"{kind.capitalize()} {record_id} not found or unauthorized"
        )


class NotAuthenticatedError(PotsplitError):
    """Raised when no account is selected or the account does not exist."""

    pass
