"""
Unit Tests for the roster slash commands.

Tests:
- Every group registers its own commands
- Member deletion and fresher clearing keep roles in step with the roster
- Non-member refresh and the lookup commands

Run with: pytest tests/test_bot_commands.py -v
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from bot.commands import ExtraGroup, ManualGroup, MemberGroup, PendingGroup
from conftest import ROLES, USER_ID
from roster import ExtraRecord, FresherStatus, MemberRecord, RecordTable

EXTRA_ROLE = 1006
OTHER_ROLE = 1099


def role(role_id, default=False):
    return SimpleNamespace(id=role_id, is_default=lambda: default)


class GuildMember:
    """Just enough of discord.Member for the command helpers."""

    def __init__(self, identity=USER_ID, role_ids=()):
        self.id = identity
        self.mention = f"<@{identity}>"
        self.roles = [role(0, default=True)] + [role(r) for r in role_ids]
        self.add_roles = AsyncMock()
        self.remove_roles = AsyncMock()

    def removed_ids(self):
        return {obj.id for call in self.remove_roles.await_args_list for obj in call.args}


def make_interaction(store, guild_members=()):
    async def fetch_members(limit=None):
        for member in guild_members:
            yield member

    interaction = MagicMock()
    deferred = []

    async def defer(*args, **kwargs):
        deferred.append(kwargs)

    interaction.client.store = store
    interaction.client.roles = ROLES
    interaction.client.settings.EXTRA_ROLE_ID = EXTRA_ROLE
    interaction.guild.fetch_members = fetch_members
    interaction.response.is_done = lambda: bool(deferred)
    interaction.response.defer = AsyncMock(side_effect=defer)
    interaction.response.send_message = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


def sent(interaction):
    calls = interaction.response.send_message.await_args_list + interaction.followup.send.await_args_list
    return [call.args[0] for call in calls]


def member_record(identity=USER_ID, fresher=FresherStatus.NONE):
    return MemberRecord(
        identity=identity, shortcode="ab1234", legal_name="Ada Lovelace",
        preferred_name="Ada", fresher=fresher,
    )


class TestRegistration:

    @pytest.mark.parametrize("group, expected", [
        (PendingGroup, {"count", "get", "add", "delete", "delete-all"}),
        (ManualGroup, {"count", "get", "add", "delete", "delete-all"}),
        (MemberGroup, {"count", "get", "find", "add", "delete", "edit", "clear-freshers", "refresh-non-members"}),
        (ExtraGroup, {"count", "get", "find", "add", "delete", "edit"}),
    ])
    def test_each_group_registers_its_commands(self, group, expected):
        assert {command.name for command in group().commands} == expected


class TestMemberCommands:

    @pytest.mark.asyncio
    async def test_delete_revokes_member_and_fresher_roles(self, store):
        await store.insert(member_record(fresher=FresherStatus.UNDERGRADUATE))
        user = GuildMember(role_ids=(ROLES.member, ROLES.undergraduate_fresher, OTHER_ROLE))
        group = MemberGroup()
        interaction = make_interaction(store)

        await group.delete.callback(group, interaction, user)

        assert await store.get(RecordTable.MEMBERS, USER_ID) is None
        assert user.removed_ids() == {ROLES.member, ROLES.undergraduate_fresher}
        assert sent(interaction) == [f"Deleted member entry for {user.mention}"]

    @pytest.mark.asyncio
    async def test_delete_can_keep_roles(self, store):
        await store.insert(member_record())
        user = GuildMember(role_ids=(ROLES.member,))
        group = MemberGroup()

        await group.delete.callback(group, make_interaction(store), user, False)

        assert await store.get(RecordTable.MEMBERS, USER_ID) is None
        user.remove_roles.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_unknown_member_leaves_roles(self, store):
        user = GuildMember(role_ids=(ROLES.member,))
        group = MemberGroup()
        interaction = make_interaction(store)

        await group.delete.callback(group, interaction, user)

        user.remove_roles.assert_not_called()
        assert sent(interaction) == [f"No member entry found for {user.mention}"]

    @pytest.mark.asyncio
    async def test_clear_freshers_strips_fresher_roles(self, store):
        await store.insert(member_record(identity=1, fresher=FresherStatus.UNDERGRADUATE))
        await store.insert(member_record(identity=2, fresher=FresherStatus.POSTGRADUATE))
        undergrad = GuildMember(1, (ROLES.member, ROLES.undergraduate_fresher))
        postgrad = GuildMember(2, (ROLES.member, ROLES.postgraduate_fresher))
        bystander = GuildMember(3, (OTHER_ROLE,))
        group = MemberGroup()
        interaction = make_interaction(store, [undergrad, postgrad, bystander])

        await group.clear_freshers.callback(group, interaction)

        interaction.response.defer.assert_awaited_once()
        assert all(not r.fresher.is_fresher for r in await store.list_all(RecordTable.MEMBERS))
        assert undergrad.removed_ids() == {ROLES.undergraduate_fresher}
        assert postgrad.removed_ids() == {ROLES.postgraduate_fresher}
        bystander.remove_roles.assert_not_called()
        interaction.followup.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refresh_non_members_only_touches_roleless_users(self, store):
        roleless = GuildMember(1)
        member = GuildMember(2, (ROLES.member,))
        group = MemberGroup()
        interaction = make_interaction(store, [roleless, member])

        await group.refresh_non_members.callback(group, interaction)

        assert [obj.id for obj in roleless.add_roles.await_args.args] == [ROLES.non_member]
        member.add_roles.assert_not_called()
        assert sent(interaction)[0].startswith("1 users given")

    @pytest.mark.asyncio
    async def test_find_by_shortcode(self, store):
        await store.insert(member_record())
        group = MemberGroup()
        interaction = make_interaction(store)

        await group.find.callback(group, interaction, "shortcode", "AB1234")

        assert sent(interaction) == [f"Members with shortcode AB1234: <@{USER_ID}>"]


class TestExtraCommands:

    @pytest.mark.asyncio
    async def test_find_by_name(self, store):
        await store.insert(ExtraRecord(identity=USER_ID, name="Bob Smith", university="UCL"))
        group = ExtraGroup()
        interaction = make_interaction(store)

        await group.find.callback(group, interaction, "bob smith")

        assert sent(interaction) == [f"Extras named bob smith: <@{USER_ID}>"]

    @pytest.mark.asyncio
    async def test_delete_revokes_extra_role(self, store):
        await store.insert(ExtraRecord(identity=USER_ID, name="Bob Smith", university="UCL"))
        user = GuildMember(role_ids=(EXTRA_ROLE,))
        group = ExtraGroup()

        await group.delete.callback(group, make_interaction(store), user)

        assert await store.count(RecordTable.EXTRAS) == 0
        assert user.removed_ids() == {EXTRA_ROLE}


class TestQueueCommands:

    @pytest.mark.asyncio
    async def test_pending_and_manual_add(self, store):
        user = GuildMember()
        interaction = make_interaction(store)

        pending = PendingGroup()
        await pending.add.callback(pending, interaction, user, "AB1234", "Ada Lovelace")
        manual = ManualGroup()
        await manual.add.callback(manual, interaction, user, "ab1234", "Ada", "Ada Lovelace", FresherStatus.POSTGRADUATE)

        assert (await store.get(RecordTable.PENDING, USER_ID)).shortcode == "ab1234"
        assert (await store.get(RecordTable.MANUAL, USER_ID)).fresher is FresherStatus.POSTGRADUATE

    @pytest.mark.asyncio
    async def test_add_conflict_is_reported(self, store):
        user = GuildMember()
        interaction = make_interaction(store)
        pending = PendingGroup()

        await pending.add.callback(pending, interaction, user, "ab1234", "Ada Lovelace")
        await pending.add.callback(pending, interaction, user, "ab1234", "Ada Lovelace")

        assert sent(interaction)[-1] == f"{user.mention} already has a pending entry"
