"""
Unit Tests for the manual-review verification path and committee decisions.

Run with: pytest tests/test_verify_manual.py -v
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import ROLES, USER_ID, FakeMember, FakeNotifier
from roster import FresherStatus, ManualRecord, MemberRecord, PendingRecord, RecordTable, RosterStoreError
from verify import ReplyMode, VerifyDispatcher, messages
from verify.manual import validate_proof_url
from verify.session import DEFAULT_AVATAR

PROOF = "https://example.org/card.png"
ACCEPT = f"review:accept:{USER_ID}"
DENY = f"review:deny:{USER_ID}"


def form_values(url=PROOF, nickname="Ada"):
    return {"shortcode": "AB1234", "realname": "Ada Lovelace", "url": url, "nickname": nickname}


async def submit(dispatcher, member, fresher="undergraduate", **values):
    return await dispatcher.handle_modal(member, f"manual.submit:{fresher}", form_values(**values))


class TestProofUrl:

    def test_accepts_http_and_https(self):
        assert validate_proof_url(" https://example.org/card.png ") == PROOF
        assert validate_proof_url("http://example.org/a").startswith("http://example.org")

    @pytest.mark.parametrize("value", [None, "", "not a url", "ftp://example.org/a", "example.org/a"])
    def test_rejects_everything_else(self, value):
        assert validate_proof_url(value) is None


class TestManualSubmit:

    @pytest.mark.asyncio
    async def test_submit_stores_request_and_posts_review_card(self, dispatcher, member, store, notifier):
        await store.insert(PendingRecord(identity=USER_ID, shortcode="ab1234", legal_name="Ada Lovelace"))

        reply = await submit(dispatcher, member)

        assert reply.content == messages.MANUAL_SENT
        assert reply.mode is ReplyMode.UPDATE
        assert await store.get(RecordTable.PENDING, USER_ID) is None
        assert await store.get(RecordTable.MANUAL, USER_ID) == ManualRecord(
            identity=USER_ID, shortcode="ab1234", legal_name="Ada Lovelace",
            preferred_name="Ada", fresher=FresherStatus.UNDERGRADUATE,
        )
        card, buttons = notifier.audits[0]
        assert card.image == PROOF
        assert [b.token for b in buttons] == [ACCEPT, DENY]

    @pytest.mark.asyncio
    async def test_invalid_url_writes_nothing(self, dispatcher, member, store, notifier):
        await store.insert(PendingRecord(identity=USER_ID, shortcode="ab1234", legal_name="Ada Lovelace"))

        reply = await submit(dispatcher, member, url="not a url")

        assert reply.content == messages.INVALID_URL
        assert await store.count(RecordTable.MANUAL) == 0
        assert await store.get(RecordTable.PENDING, USER_ID) is not None
        assert notifier.audits == []

    @pytest.mark.asyncio
    async def test_resubmit_replaces_previous_request(self, dispatcher, member, store):
        await submit(dispatcher, member, nickname="Ada")
        await dispatcher.handle_component(member, "manual.form:none")
        assert await store.count(RecordTable.MANUAL) == 0

        await submit(dispatcher, member, fresher="none", nickname="Countess")

        record = await store.get(RecordTable.MANUAL, USER_ID)
        assert record.preferred_name == "Countess"
        assert record.fresher is FresherStatus.NONE

    @pytest.mark.asyncio
    async def test_post_failure_is_reported(self, store, member, roster_client):
        dispatcher = VerifyDispatcher.build(
            store=store,
            notifier=FakeNotifier(fail_audit=True),
            roles=ROLES,
            roster_client=roster_client,
            login_url=str,
        )

        reply = await submit(dispatcher, member)

        assert reply.content == messages.MANUAL_SEND_FAILED
        assert await store.get(RecordTable.MANUAL, USER_ID) is not None

    @pytest.mark.asyncio
    async def test_unsaved_request_is_still_posted(self, dispatcher, member, store, notifier):
        store.replace = AsyncMock(side_effect=RosterStoreError("database is locked"))

        reply = await submit(dispatcher, member)

        assert reply.content == messages.MANUAL_SENT_NOT_SAVED
        assert reply.mode is ReplyMode.UPDATE
        card, buttons = notifier.audits[0]
        assert card.image == PROOF
        assert [b.token for b in buttons] == [ACCEPT, DENY]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["shortcode", "realname"])
    async def test_missing_details_are_a_validation_error(self, dispatcher, member, store, notifier, field):
        values = form_values()
        values[field] = "   "

        reply = await dispatcher.handle_modal(member, "manual.submit:none", values)

        assert reply.content == messages.MISSING_DETAILS
        assert await store.count(RecordTable.MANUAL) == 0
        assert notifier.audits == []


class TestReviewDecision:

    @pytest.mark.asyncio
    async def test_accept_promotes_and_grants_roles(self, dispatcher, member, store, notifier):
        await submit(dispatcher, member)

        reply = await dispatcher.handle_component(FakeMember(identity=1), ACCEPT)

        assert reply.mode is ReplyMode.UPDATE
        assert reply.card.title == "Member verified via manual"
        assert await store.get(RecordTable.MANUAL, USER_ID) is None
        record = await store.get(RecordTable.MEMBERS, USER_ID)
        assert record.fresher is FresherStatus.UNDERGRADUATE
        assert {ROLES.member, ROLES.undergraduate_fresher} <= member.roles
        assert len(notifier.welcomes) == 1

    @pytest.mark.asyncio
    async def test_deny_removes_request(self, dispatcher, member, store):
        member.avatar_url = "https://cdn.example/avatar.png"
        await submit(dispatcher, member)

        reply = await dispatcher.handle_component(FakeMember(identity=1), DENY)

        assert reply.card.title == "Member denied via manual"
        assert reply.card.thumbnail == member.avatar_url
        assert await store.count(RecordTable.MANUAL) == 0
        assert await store.count(RecordTable.MEMBERS) == 0
        assert member.added == []

    @pytest.mark.asyncio
    async def test_second_accept_reports_already_handled(self, dispatcher, member, store):
        await submit(dispatcher, member)
        reviewer = FakeMember(identity=1)

        await dispatcher.handle_component(reviewer, ACCEPT)
        reply = await dispatcher.handle_component(reviewer, ACCEPT)

        assert reply.content == messages.REVIEW_NOT_FOUND.format(mention=member.mention)
        assert not reply.ephemeral
        assert await store.count(RecordTable.MEMBERS) == 1

    @pytest.mark.asyncio
    async def test_concurrent_accepts_promote_once(self, dispatcher, member, store, notifier):
        await submit(dispatcher, member)
        reviewer = FakeMember(identity=1)

        replies = await asyncio.gather(
            dispatcher.handle_component(reviewer, ACCEPT),
            dispatcher.handle_component(reviewer, ACCEPT),
        )

        assert sorted(r.card is not None for r in replies) == [False, True]
        assert await store.count(RecordTable.MEMBERS) == 1
        assert len(notifier.welcomes) == 1

    @pytest.mark.asyncio
    async def test_accept_for_departed_user_writes_nothing(self, dispatcher, member, store, notifier):
        await submit(dispatcher, member)
        del notifier.members[USER_ID]

        reply = await dispatcher.handle_component(FakeMember(identity=1), ACCEPT)

        assert reply.content == messages.REVIEW_MEMBER_MISSING.format(identity=USER_ID)
        assert await store.get(RecordTable.MANUAL, USER_ID) is not None
        assert await store.count(RecordTable.MEMBERS) == 0

    @pytest.mark.asyncio
    async def test_accept_lists_failed_steps(self, store, roster_client):
        member = FakeMember(fail_roles={ROLES.member})
        notifier = FakeNotifier(fail_welcome=True)
        notifier.members[member.id] = member
        dispatcher = VerifyDispatcher.build(
            store=store, notifier=notifier, roles=ROLES, roster_client=roster_client, login_url=str,
        )
        await store.insert(ManualRecord(
            identity=USER_ID, shortcode="ab1234", legal_name="Ada Lovelace", preferred_name="Ada",
        ))

        reply = await dispatcher.handle_component(FakeMember(identity=1), ACCEPT)

        assert ("Failed steps", "member role, welcome") in reply.card.fields
        assert isinstance(await store.get(RecordTable.MEMBERS, USER_ID), MemberRecord)

    @pytest.mark.asyncio
    async def test_deny_for_departed_user_uses_default_avatar(self, dispatcher, member, store, notifier):
        await submit(dispatcher, member)
        del notifier.members[USER_ID]

        reply = await dispatcher.handle_component(FakeMember(identity=1), DENY)

        assert reply.card.thumbnail == DEFAULT_AVATAR
        assert await store.count(RecordTable.MANUAL) == 0
