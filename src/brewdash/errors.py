# brewdash/errors.py
from __future__ import annotations


class BrewDashError(RuntimeError):
    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(BrewDashError):
    """Required secret or connection string missing or malformed."""
    status_code = 500


class AuthError(BrewDashError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ValidationError(BrewDashError):
    """Malformed write payload."""
    status_code = 400


class StorageError(BrewDashError):
    status_code = 500
