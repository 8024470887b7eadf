"""
Verification Engine - Session helpers

Entry point of every path (the path selector) and the role/notification
sequence shared by all three paths once a member record exists.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from roster import RecordTable, RosterStore
from roster.records import FresherStatus, MemberRecord

from . import messages
from .gateway import MemberHandle, NotificationError, Notifier, RoleGatewayError, RoleIds
from .tokens import Step, token
from .ui import Button, ButtonStyle, Card, Reply

logger = logging.getLogger(__name__)

DEFAULT_AVATAR = "https://cdn.discordapp.com/embed/avatars/0.png"

PREFERRED_NAME_MAX_LENGTH = 64


def clean_preferred_name(value: Optional[str]) -> Optional[str]:
    """Stripped preferred name, or None if empty or too long."""
    name = (value or "").strip()
    if not name or len(name) > PREFERRED_NAME_MAX_LENGTH:
        return None
    return name


def member_card(title: str, member: MemberHandle, record: MemberRecord) -> Card:
    return Card(
        title=title,
        description=member.mention,
        thumbnail=member.avatar_url or DEFAULT_AVATAR,
        fields=(
            ("Fresher", record.fresher.label),
            ("Nickname", record.preferred_name),
            ("Name", record.legal_name),
        ),
    )


@dataclass
class CompletionReport:
    """Outcome of the role and notification steps after a member record is written"""
    failed: List[str] = field(default_factory=list)
    welcomed: bool = False
    old_member_revoked: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def roles_ok(self) -> bool:
        return not any(step.endswith("role") for step in self.failed)

    @property
    def audited(self) -> bool:
        return "audit" not in self.failed


class VerifySession:
    """Collaborators shared by the three verification paths."""

    def __init__(
        self,
        store: RosterStore,
        notifier: Notifier,
        roles: RoleIds,
        login_url: Callable[[int], str],
        contact: str = "a committee member"
    ):
        self.store = store
        self.notifier = notifier
        self.roles = roles
        self.login_url = login_url
        self.contact = contact

    # ==================== ENTRY ====================

    def info(self) -> Reply:
        return Reply.notice(messages.INFO_MSG.format(contact=self.contact))

    def unknown(self) -> Reply:
        return Reply.notice(messages.GENERIC_FAILURE.format(contact=self.contact))

    def try_again(self) -> Reply:
        return Reply.notice(messages.TRY_AGAIN)

    async def start(self, member: MemberHandle, fresh: bool) -> Reply:
        """
        Path selector.

        An existing member gets their roles re-applied (safe to repeat);
        anyone else is offered the three verification paths.
        """
        record = await self.store.get(RecordTable.MEMBERS, member.id)
        if record is not None:
            await self.apply_role(member, self.roles.member)
            fresher_role = self.roles.fresher_role(record.fresher)
            if fresher_role:
                await self.apply_role(member, fresher_role)
            await self.remove_role(member, self.roles.non_member)
            logger.info(f"Re-applied roles for existing member {member.id}")
            return Reply.notice(messages.ALREADY_VERIFIED)

        buttons = [
            Button(label="Login", token=token(Step.LOGIN_INTRO), emoji="🚀",
                   style=ButtonStyle.PRIMARY),
            Button(label="Membership", token=token(Step.MEMBERSHIP_INTRO), emoji="✈️"),
            Button(label="Manual", token=token(Step.MANUAL_INTRO), emoji="🚗"),
        ]
        if fresh:
            return Reply(content=messages.START_MSG, buttons=buttons)
        return Reply.update(messages.START_MSG, buttons)

    def fresher_buttons(self, step: Step) -> List[Button]:
        """One button per fresher category, each leading to `step`."""
        return [
            Button(label="Undergraduate fresher", emoji="✅", style=ButtonStyle.SUCCESS,
                   token=token(step, FresherStatus.UNDERGRADUATE)),
            Button(label="Postgraduate fresher", emoji="🎓", style=ButtonStyle.SUCCESS,
                   token=token(step, FresherStatus.POSTGRADUATE)),
            Button(label="Non-fresher", emoji="❌", style=ButtonStyle.PRIMARY,
                   token=token(step, FresherStatus.NONE)),
        ]

    # ==================== ROLES / NOTIFICATIONS ====================

    async def apply_role(self, member: MemberHandle, role_id: int) -> None:
        await member.add_role(role_id)

    async def remove_role(self, member: MemberHandle, role_id: int) -> None:
        await member.remove_role(role_id)

    async def welcome_user(self, member: MemberHandle, fresher: FresherStatus) -> bool:
        """Post the public welcome. Best-effort: returns False on failure."""
        try:
            await self.notifier.send_welcome(messages.welcome_message(member.mention, fresher))
            return True
        except NotificationError as e:
            logger.warning(f"Welcome message for {member.id} failed: {e}")
            return False

    async def complete_verification(
        self,
        member: MemberHandle,
        record: MemberRecord,
        audit_title: Optional[str] = None
    ) -> CompletionReport:
        """
        Grant access after the member record has been written.

        Order: member and fresher roles, clear non-member, audit card (when
        audit_title is given), then either revoke the legacy old-member role
        or welcome the user publicly. A failed step is recorded in the report
        and the sequence continues; nothing is rolled back.
        """
        report = CompletionReport()

        grants = [("member role", self.roles.member)]
        fresher_role = self.roles.fresher_role(record.fresher)
        if fresher_role:
            grants.append(("fresher role", fresher_role))
        for step, role_id in grants:
            try:
                await self.apply_role(member, role_id)
            except RoleGatewayError as e:
                logger.error(f"Granting {step} to {member.id} failed: {e}")
                report.failed.append(step)

        try:
            await self.remove_role(member, self.roles.non_member)
        except RoleGatewayError as e:
            logger.warning(f"Clearing non-member role of {member.id} failed: {e}")
            report.failed.append("non-member role")

        if audit_title:
            try:
                await self.notifier.send_audit(member_card(audit_title, member, record))
            except NotificationError as e:
                logger.error(f"Audit message for {member.id} failed: {e}")
                report.failed.append("audit")

        try:
            is_old_member = await member.has_role(self.roles.old_member)
        except RoleGatewayError as e:
            logger.error(f"Reading roles of {member.id} failed: {e}")
            report.failed.append("old-member role")
            return report

        if is_old_member:
            try:
                await self.remove_role(member, self.roles.old_member)
                report.old_member_revoked = True
            except RoleGatewayError as e:
                logger.error(f"Revoking old-member role of {member.id} failed: {e}")
                report.failed.append("old-member role")
        else:
            report.welcomed = await self.welcome_user(member, record.fresher)
            if not report.welcomed:
                report.failed.append("welcome")

        if report.failed:
            logger.warning(f"Verification of {member.id} completed with failures: {report.failed}")
        return report

    def completion_reply(self, record: MemberRecord, report: CompletionReport) -> Reply:
        content = messages.congratulations(record.fresher)
        if not report.roles_ok:
            content += messages.PARTIAL_FAILURE
        if not report.audited:
            content += messages.AUDIT_FAILURE
        return Reply.update(content)
