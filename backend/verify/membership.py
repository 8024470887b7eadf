"""
Verification Engine - Membership-order path

intro (fresher choice) -> form -> submit

Matches a Union order number and shortcode against the full membership
list. Nothing is written unless a matching entry is found.
"""

import logging
from typing import Dict

from roster import MemberRecord, RecordConflictError, RecordTable
from roster.records import FresherStatus
from services.membership_roster import MembershipRosterClient, RosterFetchError, find_entry

from . import messages
from .gateway import MemberHandle
from .session import PREFERRED_NAME_MAX_LENGTH, VerifySession, clean_preferred_name
from .tokens import Step, token
from .ui import Modal, Reply, TextField, back_button

logger = logging.getLogger(__name__)


class MembershipFlow:
    def __init__(self, session: VerifySession, roster_client: MembershipRosterClient):
        self.session = session
        self.store = session.store
        self.roster_client = roster_client

    def intro(self) -> Reply:
        return Reply.update(
            messages.MEMBERSHIP_INTRO,
            [back_button(token(Step.RESTART))] + self.session.fresher_buttons(Step.MEMBERSHIP_FORM),
        )

    async def form(self, member: MemberHandle, fresher: FresherStatus) -> Modal:
        # This path stands alone; purge anything left by the other two
        await self.store.delete(RecordTable.PENDING, member.id)
        await self.store.delete(RecordTable.MANUAL, member.id)

        return Modal(
            title="ICAS Membership Verification",
            token=token(Step.MEMBERSHIP_SUBMIT, fresher),
            fields=(
                TextField(key="order", label="ICAS Membership Union Order Number",
                          placeholder="1234567", min_length=1, max_length=20),
                TextField(key="shortcode", label="Imperial Shortcode",
                          placeholder="ab1234", min_length=1, max_length=32),
                TextField(key="nickname", label="Preferred name for Nano whois commands",
                          placeholder="Firstname Lastname", min_length=1,
                          max_length=PREFERRED_NAME_MAX_LENGTH),
            ),
        )

    async def submit(self, member: MemberHandle, fresher: FresherStatus, values: Dict[str, str]) -> Reply:
        preferred_name = clean_preferred_name(values.get("nickname"))
        if preferred_name is None:
            return Reply.notice(messages.INVALID_NAME.format(max_length=PREFERRED_NAME_MAX_LENGTH))
        order = values.get("order", "").strip()
        shortcode = values.get("shortcode", "").strip()

        try:
            entries = await self.roster_client.list_members()
        except RosterFetchError as e:
            logger.error(f"Membership list fetch for {member.id} failed: {e}")
            return Reply.notice(messages.ROSTER_FETCH_FAILED)

        entry = find_entry(entries, order, shortcode)
        if entry is None:
            logger.info(f"No membership order matched for {member.id}")
            return Reply.notice(messages.ORDER_NOT_FOUND)

        record = MemberRecord(
            identity=member.id,
            shortcode=shortcode,
            legal_name=entry.legal_name,
            preferred_name=preferred_name,
            fresher=fresher,
        )
        try:
            await self.store.insert(record)
        except RecordConflictError:
            logger.warning(f"{member.id} matched a membership but is already a member")
            return self.session.unknown()

        logger.info(f"{member.name} ({member.id}) added via membership ({fresher.value})")
        report = await self.session.complete_verification(member, record, "Member verified via membership")
        return self.session.completion_reply(record, report)
