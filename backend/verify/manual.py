"""
Verification Engine - Manual-review path

intro (fresher choice) -> form -> submit -> committee decision

The submission is stored as a manual record and a review card with
Accept/Deny buttons goes to the committee channel. The decision buttons
carry the identity being reviewed, so any committee member can act on
the card later.
"""

import logging
from typing import Dict, Optional

from pydantic import HttpUrl, TypeAdapter, ValidationError

from roster import (
    ManualRecord,
    RecordConflictError,
    RecordNotFoundError,
    RecordTable,
    RosterStoreError,
)
from roster.records import FresherStatus

from . import messages
from .gateway import MemberHandle, NotificationError
from .session import (
    DEFAULT_AVATAR,
    PREFERRED_NAME_MAX_LENGTH,
    VerifySession,
    clean_preferred_name,
    member_card,
)
from .tokens import Decision, Step, Token, token
from .ui import Button, ButtonStyle, Card, Modal, Reply, TextField, back_button

logger = logging.getLogger(__name__)

_url_adapter = TypeAdapter(HttpUrl)


def validate_proof_url(value: Optional[str]) -> Optional[str]:
    """Normalised http(s) URL, or None if the value is not one."""
    try:
        return str(_url_adapter.validate_python((value or "").strip()))
    except ValidationError:
        return None


def mention_for(identity: int) -> str:
    return f"<@{identity}>"


class ManualFlow:
    def __init__(self, session: VerifySession):
        self.session = session
        self.store = session.store

    def intro(self) -> Reply:
        return Reply.update(
            messages.MANUAL_INTRO,
            [back_button(token(Step.RESTART))] + self.session.fresher_buttons(Step.MANUAL_FORM),
        )

    async def form(self, member: MemberHandle, fresher: FresherStatus) -> Modal:
        # Last attempt wins
        await self.store.delete(RecordTable.MANUAL, member.id)

        return Modal(
            title="Manual Verification",
            token=token(Step.MANUAL_SUBMIT, fresher),
            fields=(
                TextField(key="shortcode", label="Imperial Shortcode",
                          placeholder="ab1234", min_length=1, max_length=32),
                TextField(key="realname", label="Name as on Imperial record",
                          placeholder="Firstname Lastname", min_length=1, max_length=200),
                TextField(key="url", label="URL to proof image",
                          placeholder="E.g. photo of College ID Card or screenshot of College Acceptance Letter",
                          min_length=1, max_length=1000),
                TextField(key="nickname", label="Preferred name for Nano whois commands",
                          placeholder="Firstname Lastname", min_length=1,
                          max_length=PREFERRED_NAME_MAX_LENGTH),
            ),
        )

    def review_card(self, member: MemberHandle, record: ManualRecord, proof_url: str) -> Card:
        return Card(
            title="New verification request from",
            description=member.mention,
            thumbnail=member.avatar_url or DEFAULT_AVATAR,
            image=proof_url,
            fields=(
                ("Real Name (To be checked)", record.legal_name),
                ("Imperial Shortcode (To be checked)", record.shortcode),
                ("Fresher (To be checked)", record.fresher.label),
                ("Nickname (Nano whois commands)", record.preferred_name),
                ("Verification URL (Also displayed below)", proof_url),
            ),
        )

    async def submit(self, member: MemberHandle, fresher: FresherStatus, values: Dict[str, str]) -> Reply:
        preferred_name = clean_preferred_name(values.get("nickname"))
        shortcode = values.get("shortcode", "").strip()
        legal_name = values.get("realname", "").strip()
        if preferred_name is None:
            return Reply.notice(messages.INVALID_NAME.format(max_length=PREFERRED_NAME_MAX_LENGTH))
        if not shortcode or not legal_name:
            return Reply.notice(messages.MISSING_DETAILS)

        proof_url = validate_proof_url(values.get("url"))
        if proof_url is None:
            return Reply.notice(messages.INVALID_URL)

        # A login started earlier must not be promoted behind the committee's back
        await self.store.delete(RecordTable.PENDING, member.id)

        record = ManualRecord(
            identity=member.id,
            shortcode=shortcode,
            legal_name=legal_name,
            preferred_name=preferred_name,
            fresher=fresher,
        )
        try:
            await self.store.replace(record)
            saved = True
        except (RosterStoreError, RecordConflictError) as e:
            logger.error(f"Saving manual request for {member.id} failed: {e}")
            saved = False

        buttons = [
            Button(label="Accept", emoji="✅", style=ButtonStyle.SUCCESS,
                   token=Token.review(Decision.ACCEPT, member.id).encode()),
            Button(label="Deny", emoji="❎", style=ButtonStyle.DANGER,
                   token=Token.review(Decision.DENY, member.id).encode()),
        ]
        try:
            await self.session.notifier.send_audit(self.review_card(member, record, proof_url), buttons)
            sent = True
        except NotificationError as e:
            logger.error(f"Posting manual request for {member.id} failed: {e}")
            sent = False

        logger.info(f"{member.name} ({member.id}) requested manual verification (saved={saved}, sent={sent})")
        if not sent:
            return Reply.update(messages.MANUAL_SEND_FAILED)
        if not saved:
            return Reply.update(messages.MANUAL_SENT_NOT_SAVED)
        return Reply.update(messages.MANUAL_SENT)

    async def decide(self, decision: Decision, identity: int) -> Reply:
        """
        Committee decision on a review card.

        Safe to invoke twice: only one accept can consume the manual record,
        the other reports that the request was already handled.
        """
        member = await self.session.notifier.fetch_member(identity)

        if decision is Decision.DENY:
            removed = await self.store.delete(RecordTable.MANUAL, identity)
            logger.info(f"{identity} denied via manual (record removed={removed})")
            return Reply.update(None, card=Card(
                title="Member denied via manual",
                description=mention_for(identity),
                thumbnail=(member and member.avatar_url) or DEFAULT_AVATAR,
            ))

        if member is None:
            logger.warning(f"Manual accept for {identity} but they are not in the server")
            return Reply(content=messages.REVIEW_MEMBER_MISSING.format(identity=identity), ephemeral=False)

        try:
            record = await self.store.move(RecordTable.MANUAL, RecordTable.MEMBERS, identity)
        except (RecordNotFoundError, RecordConflictError) as e:
            logger.info(f"Manual accept for {identity} found nothing to promote: {e}")
            return Reply(content=messages.REVIEW_NOT_FOUND.format(mention=member.mention), ephemeral=False)

        logger.info(f"{member.name} ({identity}) added via manual ({record.fresher.value})")
        report = await self.session.complete_verification(member, record)

        card = member_card("Member verified via manual", member, record)
        if report.failed:
            card = Card(
                title=card.title,
                description=card.description,
                thumbnail=card.thumbnail,
                fields=card.fields + (("Failed steps", ", ".join(report.failed)),),
            )
        return Reply.update(None, card=card)
