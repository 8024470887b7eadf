"""
Verification Engine - Login path

intro -> check -> fresher -> name -> form -> submit

The external identity provider writes a pending record through the webhook
once the user has logged in; submit promotes that record to a member.
"""

import logging
from typing import Dict

from roster import RecordConflictError, RecordNotFoundError, RecordTable, RosterStoreError
from roster.records import FresherStatus

from . import messages
from .gateway import MemberHandle
from .session import PREFERRED_NAME_MAX_LENGTH, VerifySession, clean_preferred_name
from .tokens import Step, token
from .ui import Button, ButtonStyle, Modal, Reply, TextField, back_button

logger = logging.getLogger(__name__)


class LoginFlow:
    def __init__(self, session: VerifySession):
        self.session = session
        self.store = session.store

    def intro(self, member: MemberHandle) -> Reply:
        return Reply.update(messages.LOGIN_INTRO, [
            back_button(token(Step.RESTART)),
            Button(label="Login Here", emoji="🚀", style=ButtonStyle.LINK,
                   url=self.session.login_url(member.id)),
            Button(label="Then continue", emoji="👉", token=token(Step.LOGIN_CHECK)),
        ])

    async def check(self, member: MemberHandle) -> Reply:
        """Advance only once the identity provider has confirmed the login."""
        try:
            pending = await self.store.get(RecordTable.PENDING, member.id)
        except RosterStoreError as e:
            logger.error(f"Pending lookup for {member.id} failed: {e}")
            return self.session.try_again()

        if pending is None:
            return Reply.notice(messages.LOGIN_NOT_COMPLETED)

        return Reply.update(messages.LOGIN_FORM, [
            back_button(token(Step.LOGIN_INTRO)),
            Button(label="Form", emoji="📑", style=ButtonStyle.PRIMARY,
                   token=token(Step.LOGIN_FRESHER)),
        ])

    def fresher(self) -> Reply:
        return Reply.update(
            messages.FRESHER_QUESTION,
            [back_button(token(Step.LOGIN_CHECK))] + self.session.fresher_buttons(Step.LOGIN_NAME),
        )

    def name(self, fresher: FresherStatus) -> Reply:
        return Reply.update(messages.NAME_PROMPT, [
            back_button(token(Step.LOGIN_FRESHER)),
            Button(label="Name", emoji="💬", style=ButtonStyle.PRIMARY,
                   token=token(Step.LOGIN_FORM, fresher)),
        ])

    def form(self, fresher: FresherStatus) -> Modal:
        return Modal(
            title="Preferred Name",
            token=token(Step.LOGIN_SUBMIT, fresher),
            fields=(
                TextField(
                    key="nickname",
                    label="Preferred name for Nano whois commands",
                    placeholder="Firstname Lastname",
                    min_length=1,
                    max_length=PREFERRED_NAME_MAX_LENGTH,
                ),
            ),
        )

    async def submit(self, member: MemberHandle, fresher: FresherStatus, values: Dict[str, str]) -> Reply:
        preferred_name = clean_preferred_name(values.get("nickname"))
        if preferred_name is None:
            return Reply.notice(messages.INVALID_NAME.format(max_length=PREFERRED_NAME_MAX_LENGTH))

        # A manual request from an abandoned attempt must not outlive the login
        await self.store.delete(RecordTable.MANUAL, member.id)

        try:
            record = await self.store.move(
                RecordTable.PENDING,
                RecordTable.MEMBERS,
                member.id,
                preferred_name=preferred_name,
                fresher=fresher,
            )
        except RecordNotFoundError:
            logger.info(f"No pending login for {member.id} at submit")
            return Reply.notice(messages.LOGIN_EXPIRED)
        except RecordConflictError:
            logger.info(f"{member.id} submitted login but is already a member")
            return Reply.notice(messages.ALREADY_MEMBER)

        logger.info(f"{member.name} ({member.id}) added via login ({fresher.value})")
        report = await self.session.complete_verification(member, record, "Member verified via login")
        return self.session.completion_reply(record, report)
