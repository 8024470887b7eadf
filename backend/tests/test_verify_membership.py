"""
Unit Tests for the membership-order verification path.

Run with: pytest tests/test_verify_membership.py -v
"""

import pytest

from conftest import ROLES, USER_ID
from roster import FresherStatus, ManualRecord, MemberRecord, PendingRecord, RecordTable
from services.membership_roster import RosterEntry, RosterFetchError
from verify import Modal, messages

ADA = RosterEntry(FirstName="Ada", Surname="Lovelace", Login="ab1234", OrderNo=1234567)
GRACE = RosterEntry(FirstName="Grace", Surname="Hopper", CID="01234567", OrderNo="7654321")


def form_values(order="1234567", shortcode="ab1234", nickname="Ada"):
    return {"order": order, "shortcode": shortcode, "nickname": nickname}


class TestMembershipPath:

    @pytest.mark.asyncio
    async def test_intro_offers_fresher_choice(self, dispatcher, member):
        reply = await dispatcher.handle_component(member, "membership.intro")
        tokens = [b.token for b in reply.buttons]
        assert tokens[0] == "restart"
        assert "membership.form:none" in tokens

    @pytest.mark.asyncio
    async def test_form_purges_other_paths(self, dispatcher, member, store):
        await store.insert(PendingRecord(identity=USER_ID, shortcode="ab1234", legal_name="Ada Lovelace"))
        await store.insert(ManualRecord(
            identity=USER_ID, shortcode="ab1234", legal_name="Ada Lovelace", preferred_name="Ada",
        ))

        modal = await dispatcher.handle_component(member, "membership.form:undergraduate")

        assert isinstance(modal, Modal)
        assert modal.token == "membership.submit:undergraduate"
        assert [f.key for f in modal.fields] == ["order", "shortcode", "nickname"]
        assert await store.count(RecordTable.PENDING) == 0
        assert await store.count(RecordTable.MANUAL) == 0

    @pytest.mark.asyncio
    async def test_matching_order_creates_member(self, dispatcher, member, store, roster_client, notifier):
        roster_client.list_members.return_value = [GRACE, ADA]

        reply = await dispatcher.handle_modal(member, "membership.submit:none", form_values())

        assert reply.content == messages.congratulations(FresherStatus.NONE)
        assert await store.get(RecordTable.MEMBERS, USER_ID) == MemberRecord(
            identity=USER_ID, shortcode="ab1234", legal_name="Ada Lovelace",
            preferred_name="Ada", fresher=FresherStatus.NONE,
        )
        assert ROLES.member in member.roles
        assert notifier.audits[0][0].title == "Member verified via membership"

    @pytest.mark.asyncio
    async def test_cid_and_string_order_match(self, dispatcher, member, store, roster_client):
        roster_client.list_members.return_value = [ADA, GRACE]

        await dispatcher.handle_modal(
            member, "membership.submit:postgraduate",
            form_values(order=" 7654321 ", shortcode="01234567", nickname="Grace"),
        )

        record = await store.get(RecordTable.MEMBERS, USER_ID)
        assert record.legal_name == "Grace Hopper"
        assert record.fresher is FresherStatus.POSTGRADUATE
        assert ROLES.postgraduate_fresher in member.roles

    @pytest.mark.asyncio
    async def test_order_mismatch_writes_nothing(self, dispatcher, member, store, roster_client):
        roster_client.list_members.return_value = [ADA]

        reply = await dispatcher.handle_modal(member, "membership.submit:none", form_values(order="1234568"))

        assert reply.content == messages.ORDER_NOT_FOUND
        assert await store.count(RecordTable.MEMBERS) == 0
        assert member.added == []

    @pytest.mark.asyncio
    async def test_shortcode_must_match_order(self, dispatcher, member, store, roster_client):
        roster_client.list_members.return_value = [ADA, GRACE]

        reply = await dispatcher.handle_modal(member, "membership.submit:none", form_values(shortcode="gh1906"))

        assert reply.content == messages.ORDER_NOT_FOUND
        assert await store.count(RecordTable.MEMBERS) == 0

    @pytest.mark.asyncio
    async def test_fetch_failure_is_retryable(self, dispatcher, member, store, roster_client):
        roster_client.list_members.side_effect = RosterFetchError("Union API returned 503")

        reply = await dispatcher.handle_modal(member, "membership.submit:none", form_values())

        assert reply.content == messages.ROSTER_FETCH_FAILED
        assert await store.count(RecordTable.MEMBERS) == 0

    @pytest.mark.asyncio
    async def test_already_member_gets_generic_failure(self, dispatcher, member, store, roster_client):
        await store.insert(MemberRecord(
            identity=USER_ID, shortcode="ab1234", legal_name="Ada Lovelace", preferred_name="Ada",
        ))
        roster_client.list_members.return_value = [ADA]

        reply = await dispatcher.handle_modal(member, "membership.submit:none", form_values(nickname="Countess"))

        assert "<@42>" in reply.content
        assert (await store.get(RecordTable.MEMBERS, USER_ID)).preferred_name == "Ada"

    @pytest.mark.asyncio
    async def test_invalid_name_skips_lookup(self, dispatcher, member, roster_client):
        reply = await dispatcher.handle_modal(member, "membership.submit:none", form_values(nickname=""))

        assert reply.content.startswith("Please enter a preferred name")
        roster_client.list_members.assert_not_called()
