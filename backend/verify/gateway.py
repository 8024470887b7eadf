"""
Verification Engine - Collaborators

Interfaces the engine drives but does not implement: a handle on the
verifying user's guild membership (role grants) and the notification
channels. The chat adapter provides the concrete versions.
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol

from roster.records import FresherStatus

from .ui import Button, Card


class RoleGatewayError(Exception):
    """A role grant, revoke or lookup failed (retryable)"""
    pass


class NotificationError(Exception):
    """Posting to a channel failed"""
    pass


class MemberHandle(Protocol):
    """
    One user's membership in the guild, owned by a single interaction.

    add_role/remove_role are idempotent at the platform. has_role re-queries
    the live role list rather than trusting a cached copy.
    """

    id: int
    name: str
    mention: str
    avatar_url: Optional[str]

    async def add_role(self, role_id: int) -> None: ...

    async def remove_role(self, role_id: int) -> None: ...

    async def has_role(self, role_id: int) -> bool: ...


class Notifier(Protocol):
    async def send_audit(self, card: Card, buttons: Optional[List[Button]] = None) -> None: ...

    async def send_welcome(self, content: str) -> None: ...

    async def fetch_member(self, identity: int) -> Optional[MemberHandle]: ...


@dataclass(frozen=True)
class RoleIds:
    member: int
    non_member: int
    old_member: int
    undergraduate_fresher: int
    postgraduate_fresher: int

    def fresher_role(self, fresher: FresherStatus) -> Optional[int]:
        return {
            FresherStatus.UNDERGRADUATE: self.undergraduate_fresher,
            FresherStatus.POSTGRADUATE: self.postgraduate_fresher,
        }.get(fresher)

    @classmethod
    def from_settings(cls, settings) -> "RoleIds":
        roles = settings.role_ids
        return cls(
            member=roles["member"],
            non_member=roles["non_member"],
            old_member=roles["old_member"],
            undergraduate_fresher=roles["undergraduate"],
            postgraduate_fresher=roles["postgraduate"],
        )
