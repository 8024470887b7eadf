"""
Roster Store Module

Persistence for the verification roster:
- Pending login confirmations pushed by the identity provider
- Manual verification requests awaiting committee review
- Verified members
- Extras (guests from other universities)
"""

from .exceptions import (
    RosterError,
    RosterStoreError,
    RecordNotFoundError,
    RecordConflictError
)
from .records import (
    RecordTable,
    FresherStatus,
    PendingRecord,
    ManualRecord,
    MemberRecord,
    ExtraRecord,
    parse_identity
)
from .service import RosterStore, get_roster_store

__all__ = [
    'RosterError',
    'RosterStoreError',
    'RecordNotFoundError',
    'RecordConflictError',
    'RecordTable',
    'FresherStatus',
    'PendingRecord',
    'ManualRecord',
    'MemberRecord',
    'ExtraRecord',
    'parse_identity',
    'RosterStore',
    'get_roster_store'
]
