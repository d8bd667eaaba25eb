"""Error taxonomy shared by the vault engine and the API layer."""


class VaultError(Exception):
    """Base class for every error the vault raises on purpose."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(VaultError):
    """An id referenced by get/update/delete does not exist."""


class ValidationError(VaultError):
    """Missing required field or malformed payload."""


class CategoryGuardError(VaultError):
    """A category delete was refused by one of its guards."""


class HasChildrenError(CategoryGuardError):
    def __init__(self, message: str = "Cannot delete category with children"):
        super().__init__(message)


class InUseError(CategoryGuardError):
    def __init__(self, message: str = "Cannot delete category that is used by items"):
        super().__init__(message)


class UpstreamError(VaultError):
    """Failure reported by an external collaborator (upload, auth, profile)."""


class SessionStateError(VaultError):
    """Illegal transition of a study session."""
