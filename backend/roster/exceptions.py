"""
Roster Store - Exceptions
"""

from typing import Optional


class RosterError(Exception):
    """Base class for roster store errors"""
    pass


class RosterStoreError(RosterError):
    """The store could not be reached or the statement failed (retryable)"""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class RecordNotFoundError(RosterError):
    """No row for the identity in the table an operation needed"""

    def __init__(self, table: str, identity: int):
        super().__init__(f"No {table} record for {identity}")
        self.table = table
        self.identity = identity


class RecordConflictError(RosterError):
    """A row for the identity already exists"""

    def __init__(self, table: str, identity: int):
        super().__init__(f"{table} record for {identity} already exists")
        self.table = table
        self.identity = identity
