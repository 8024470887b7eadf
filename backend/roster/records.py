"""
Roster Store - Records

Immutable record types for the four roster tables. Pending, Manual and
Member records share an identity core (Discord ID, shortcode, legal name);
Manual and Member add the profile fields collected during verification.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Type, Union

# Discord snowflakes are stored as signed 64-bit integers
MAX_IDENTITY = 2**63 - 1


def parse_identity(value: Any) -> Optional[int]:
    """Positive int64 identity from an int or a string of ASCII digits, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        identity = value
    else:
        text = str(value)
        if not (text.isascii() and text.isdigit()):
            return None
        identity = int(text)
    if not 0 < identity <= MAX_IDENTITY:
        return None
    return identity


class RecordTable(str, Enum):
    """Roster tables"""
    PENDING = "pending"
    MANUAL = "manual"
    MEMBERS = "members"
    EXTRAS = "extras"


class FresherStatus(str, Enum):
    """Fresher category chosen during verification"""
    NONE = "none"
    UNDERGRADUATE = "undergraduate"
    POSTGRADUATE = "postgraduate"

    @property
    def is_fresher(self) -> bool:
        return self is not FresherStatus.NONE

    @property
    def label(self) -> str:
        return {
            FresherStatus.NONE: "Non-fresher",
            FresherStatus.UNDERGRADUATE: "Undergraduate fresher",
            FresherStatus.POSTGRADUATE: "Postgraduate fresher",
        }[self]

    @classmethod
    def parse(cls, value: Any) -> "FresherStatus":
        """
        Accept enum values plus the boolean flag older exports carry.

        True maps to UNDERGRADUATE, False to NONE.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.UNDERGRADUATE if value else cls.NONE
        text = str(value).strip().lower()
        if text in ("true", "1", "yes"):
            return cls.UNDERGRADUATE
        if text in ("false", "0", "no", ""):
            return cls.NONE
        return cls(text)


@dataclass(frozen=True)
class BaseRecord:
    """Shared behaviour of every roster record"""
    identity: int

    table: ClassVar[RecordTable]

    def __post_init__(self):
        identity = parse_identity(self.identity)
        if identity is None:
            raise ValueError(f"Invalid identity: {self.identity!r}")
        object.__setattr__(self, "identity", identity)

    def to_dict(self) -> Dict[str, Any]:
        """Column mapping, also used as the export format."""
        data: Dict[str, Any] = {"discord_id": self.identity}
        for field in fields(self):
            if field.name == "identity":
                continue
            value = getattr(self, field.name)
            data[field.name] = value.value if isinstance(value, Enum) else value
        return data

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "BaseRecord":
        """Build a record from a table row or an exported dict."""
        values: Dict[str, Any] = {"identity": row["discord_id"]}
        for field in fields(cls):
            if field.name != "identity" and field.name in row:
                values[field.name] = row[field.name]
        if "fresher" in values:
            values["fresher"] = FresherStatus.parse(values["fresher"])
        return cls(**values)


@dataclass(frozen=True)
class IdentityRecord(BaseRecord):
    shortcode: str
    legal_name: str

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, "shortcode", self.shortcode.strip().lower())
        object.__setattr__(self, "legal_name", self.legal_name.strip())


@dataclass(frozen=True)
class PendingRecord(IdentityRecord):
    table: ClassVar[RecordTable] = RecordTable.PENDING


@dataclass(frozen=True)
class ProfileRecord(IdentityRecord):
    preferred_name: str
    fresher: FresherStatus = FresherStatus.NONE

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, "preferred_name", self.preferred_name.strip())
        object.__setattr__(self, "fresher", FresherStatus.parse(self.fresher))


@dataclass(frozen=True)
class ManualRecord(ProfileRecord):
    table: ClassVar[RecordTable] = RecordTable.MANUAL


@dataclass(frozen=True)
class MemberRecord(ProfileRecord):
    table: ClassVar[RecordTable] = RecordTable.MEMBERS


@dataclass(frozen=True)
class ExtraRecord(BaseRecord):
    name: str
    university: str

    table: ClassVar[RecordTable] = RecordTable.EXTRAS


Record = Union[PendingRecord, ManualRecord, MemberRecord, ExtraRecord]

RECORD_TYPES: Dict[RecordTable, Type[BaseRecord]] = {
    RecordTable.PENDING: PendingRecord,
    RecordTable.MANUAL: ManualRecord,
    RecordTable.MEMBERS: MemberRecord,
    RecordTable.EXTRAS: ExtraRecord,
}
