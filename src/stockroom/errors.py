from __future__ import annotations


class InventoryError(Exception):
    """Base class for errors surfaced to API callers as ``{error: message}``."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(InventoryError):
    """Missing or invalid required input (missing item, empty import payload...)."""

    status_code = 400


class NotFoundError(InventoryError):
    status_code = 404


class UnsupportedFormatError(InventoryError):
    status_code = 400


class StorageError(InventoryError):
    """The backing store could not be read or written."""

    status_code = 500
