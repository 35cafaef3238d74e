"""
Exception taxonomy shared by repositories, the reconciler and the API layer.
"""
from typing import Optional


class PantryError(Exception):
    """Base class for every failure the application knows how to report."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RecordStoreError(PantryError):
    """A Supabase read/write failed (network, auth, permission, missing client)."""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message)
        self.table = table
        self.operation = operation


class SuggestionServiceError(PantryError):
    """An external AI / lookup call failed or returned something unusable."""


class ValidationError(PantryError):
    """Input was rejected before any network call was made."""


NO_OWNER_MESSAGE = "No user is signed in."
TRY_AGAIN_MESSAGE = "Something went wrong during the analysis. Please try again."
