"""
Slash commands.

/setup and /whois are for everyone; the roster groups are restricted to
members with Manage Roles by default and can be narrowed further in the
server's integration settings.

discord.py only registers the commands defined directly on a Group
subclass, so each roster group declares its own commands and delegates to
the shared helpers below.
"""

import logging
from typing import AsyncIterator, Iterable, List, Literal, Optional

import discord
from discord import app_commands

from roster import (
    ExtraRecord,
    FresherStatus,
    ManualRecord,
    MemberRecord,
    PendingRecord,
    RecordConflictError,
    RecordTable,
    RosterError,
)
from roster.records import BaseRecord
from verify import RoleIds, messages
from verify.tokens import Step, token
from verify.ui import Button, ButtonStyle

from .render import render_view

logger = logging.getLogger(__name__)

# Discord message limit, leaving room for the code fence
_MAX_LISTING = 1900


def _store(interaction: discord.Interaction):
    return interaction.client.store


def describe(record: BaseRecord) -> str:
    return "\n".join(f"{key}: {value}" for key, value in record.to_dict().items())


def listing(records: List[BaseRecord]) -> str:
    if not records:
        return "No entries"
    lines = [" | ".join(str(v) for v in record.to_dict().values()) for record in records]
    text = "\n".join(lines)
    if len(text) > _MAX_LISTING:
        text = text[:_MAX_LISTING] + "\n..."
    return f"```\n{text}\n```"


def mentions(records: List[BaseRecord]) -> str:
    return " ".join(f"<@{record.identity}>" for record in records)


async def reply(interaction: discord.Interaction, content: str, ephemeral: bool = True) -> None:
    allowed = discord.AllowedMentions.none()
    if interaction.response.is_done():
        await interaction.followup.send(content, ephemeral=ephemeral, allowed_mentions=allowed)
    else:
        await interaction.response.send_message(content, ephemeral=ephemeral, allowed_mentions=allowed)


# ==================== SHARED TABLE COMMANDS ====================

async def count_entries(interaction: discord.Interaction, table: RecordTable) -> None:
    total = await _store(interaction).count(table)
    await reply(interaction, f"There are {total} entries in {table.value}")


async def get_entries(interaction: discord.Interaction, table: RecordTable, user: Optional[discord.Member]) -> None:
    store = _store(interaction)
    if user is None:
        await reply(interaction, listing(await store.list_all(table)))
        return
    record = await store.get(table, user.id)
    if record is None:
        await reply(interaction, f"No {table.value} entry found for {user.mention}")
    else:
        await reply(interaction, f"```\n{describe(record)}\n```")


async def add_entry(interaction: discord.Interaction, record: BaseRecord, user: discord.Member) -> bool:
    try:
        await _store(interaction).insert(record)
    except RecordConflictError:
        await reply(interaction, f"{user.mention} already has a {record.table.value} entry")
        return False
    logger.info(f"{interaction.user} added {record.table.value} entry for {user.id}")
    return True


async def delete_entry(interaction: discord.Interaction, table: RecordTable, user: discord.Member) -> bool:
    removed = await _store(interaction).delete(table, user.id)
    logger.info(f"{interaction.user} deleted {table.value} entry for {user.id}: {removed}")
    return removed


async def delete_all_entries(interaction: discord.Interaction, table: RecordTable) -> None:
    removed = await _store(interaction).delete_all(table)
    logger.warning(f"{interaction.user} deleted all {removed} {table.value} entries")
    await reply(interaction, f"Deleted {removed} {table.value} entries")


# ==================== ROLE SWEEPS ====================

def _held(member: discord.Member, role_ids: Iterable[int]) -> List[discord.Object]:
    wanted = set(role_ids)
    return [discord.Object(id=role.id) for role in member.roles if role.id in wanted]


async def revoke_roles(member: discord.Member, role_ids: Iterable[int], reason: str) -> int:
    """Remove whichever of role_ids the member holds. Returns how many."""
    held = _held(member, role_ids)
    if held:
        await member.remove_roles(*held, reason=reason)
    return len(held)


async def strip_fresher_roles(members: AsyncIterator[discord.Member], roles: RoleIds, reason: str) -> int:
    """Remove both fresher roles from every member. Returns members changed."""
    fresher_roles = (roles.undergraduate_fresher, roles.postgraduate_fresher)
    changed = 0
    async for member in members:
        try:
            if await revoke_roles(member, fresher_roles, reason):
                changed += 1
        except discord.HTTPException as e:
            logger.warning(f"Removing fresher roles from {member.id} failed: {e}")
    return changed


async def grant_non_member_role(members: AsyncIterator[discord.Member], role_id: int, reason: str) -> int:
    """Give role_id to every member without any role. Returns members changed."""
    changed = 0
    async for member in members:
        if any(not role.is_default() for role in member.roles):
            continue
        try:
            await member.add_roles(discord.Object(id=role_id), reason=reason)
            changed += 1
        except discord.HTTPException as e:
            logger.warning(f"Granting non-member role to {member.id} failed: {e}")
    return changed


# ==================== SETUP ====================

@app_commands.command(name="setup", description="Send the verification introduction message")
@app_commands.describe(channel="Channel to send the message in", label="Label for the start button")
@app_commands.default_permissions(manage_guild=True)
@app_commands.guild_only()
async def setup_command(
    interaction: discord.Interaction,
    channel: discord.TextChannel,
    message: Optional[str] = None,
    label: Optional[str] = None,
    emoji: Optional[str] = None
):
    logger.info(f"{interaction.user} sent setup message to {channel}")
    view = render_view([
        Button(label="More info", emoji="📖", token=token(Step.INFO)),
        Button(label=label or "Begin", emoji=emoji or "🚀", style=ButtonStyle.PRIMARY,
               token=token(Step.START)),
    ])
    await channel.send(message or messages.SETUP_MSG, view=view)
    await reply(interaction, f"Sending intro message in {channel.mention}")


# ==================== WHOIS ====================

class WhoisGroup(app_commands.Group):
    """(Public) Look up verified members"""

    def __init__(self):
        super().__init__(name="whois", description="Look up verified members", guild_only=True)

    @app_commands.command(name="id", description="Get member info by Discord user")
    async def by_id(self, interaction: discord.Interaction, user: discord.Member):
        record = await _store(interaction).get(RecordTable.MEMBERS, user.id)
        if record is None:
            await reply(interaction, f"No member entry found for {user.mention}")
        else:
            await reply(interaction, f"{user.mention}: {record.preferred_name}")

    @app_commands.command(name="nick", description="Get member info by preferred name (exact)")
    async def by_nick(self, interaction: discord.Interaction, nickname: str):
        records = await _store(interaction).find_member("preferred_name", nickname)
        if not records:
            await reply(interaction, f"No member entry found for nickname {nickname}")
        else:
            await reply(interaction, "\n".join(f"{nickname}: <@{r.identity}>" for r in records))

    @app_commands.command(name="name", description="Get member info by legal name (exact)")
    async def by_name(self, interaction: discord.Interaction, name: str):
        records = await _store(interaction).find_member("legal_name", name)
        if not records:
            await reply(interaction, f"No member entry found for name {name}")
        else:
            await reply(interaction, "\n".join(f"{name}: <@{r.identity}>" for r in records))


# ==================== ROSTER ADMIN ====================

class AdminGroup(app_commands.Group):
    """Roster group restricted to Manage Roles"""

    def __init__(self, name: str, description: str):
        super().__init__(
            name=name,
            description=description,
            guild_only=True,
            default_permissions=discord.Permissions(manage_roles=True),
        )


class PendingGroup(AdminGroup):
    table = RecordTable.PENDING

    def __init__(self):
        super().__init__(name="pending", description="Logins waiting for the user to finish the form")

    @app_commands.command(name="count", description="Number of entries")
    async def count(self, interaction: discord.Interaction):
        await count_entries(interaction, self.table)

    @app_commands.command(name="get", description="Get an entry, or every entry if no user is given")
    async def get(self, interaction: discord.Interaction, user: Optional[discord.Member] = None):
        await get_entries(interaction, self.table, user)

    @app_commands.command(name="add", description="Add a pending login")
    async def add(self, interaction: discord.Interaction, user: discord.Member, shortcode: str, legal_name: str):
        record = PendingRecord(identity=user.id, shortcode=shortcode, legal_name=legal_name)
        if await add_entry(interaction, record, user):
            await reply(interaction, f"Pending entry added for {user.mention}")

    @app_commands.command(name="delete", description="Delete an entry")
    async def delete(self, interaction: discord.Interaction, user: discord.Member):
        if await delete_entry(interaction, self.table, user):
            await reply(interaction, f"Deleted pending entry for {user.mention}")
        else:
            await reply(interaction, f"No pending entry found for {user.mention}")

    @app_commands.command(name="delete-all", description="Delete every entry")
    async def delete_all(self, interaction: discord.Interaction):
        await delete_all_entries(interaction, self.table)


class ManualGroup(AdminGroup):
    table = RecordTable.MANUAL

    def __init__(self):
        super().__init__(name="manual", description="Manual verification requests")

    @app_commands.command(name="count", description="Number of entries")
    async def count(self, interaction: discord.Interaction):
        await count_entries(interaction, self.table)

    @app_commands.command(name="get", description="Get an entry, or every entry if no user is given")
    async def get(self, interaction: discord.Interaction, user: Optional[discord.Member] = None):
        await get_entries(interaction, self.table, user)

    @app_commands.command(name="add", description="Add a manual verification request")
    async def add(
        self,
        interaction: discord.Interaction,
        user: discord.Member,
        shortcode: str,
        preferred_name: str,
        legal_name: str,
        fresher: FresherStatus = FresherStatus.NONE
    ):
        record = ManualRecord(
            identity=user.id,
            shortcode=shortcode,
            legal_name=legal_name,
            preferred_name=preferred_name,
            fresher=fresher,
        )
        if await add_entry(interaction, record, user):
            await reply(interaction, f"Manual entry added for {user.mention}")

    @app_commands.command(name="delete", description="Delete an entry")
    async def delete(self, interaction: discord.Interaction, user: discord.Member):
        if await delete_entry(interaction, self.table, user):
            await reply(interaction, f"Deleted manual entry for {user.mention}")
        else:
            await reply(interaction, f"No manual entry found for {user.mention}")

    @app_commands.command(name="delete-all", description="Delete every entry")
    async def delete_all(self, interaction: discord.Interaction):
        await delete_all_entries(interaction, self.table)


class MemberGroup(AdminGroup):
    table = RecordTable.MEMBERS

    def __init__(self):
        super().__init__(name="member", description="Verified members")

    @app_commands.command(name="count", description="Number of entries")
    async def count(self, interaction: discord.Interaction):
        await count_entries(interaction, self.table)

    @app_commands.command(name="get", description="Get an entry, or every entry if no user is given")
    async def get(self, interaction: discord.Interaction, user: Optional[discord.Member] = None):
        await get_entries(interaction, self.table, user)

    @app_commands.command(name="find", description="Find members by shortcode, preferred name or legal name")
    async def find(
        self,
        interaction: discord.Interaction,
        field: Literal["shortcode", "preferred_name", "legal_name"],
        value: str
    ):
        records = await _store(interaction).find_member(field, value)
        if not records:
            await reply(interaction, f"No member entry found for {field} {value}")
        else:
            await reply(interaction, f"Members with {field} {value}: {mentions(records)}")

    @app_commands.command(name="add", description="Add a member and grant the member role")
    async def add(
        self,
        interaction: discord.Interaction,
        user: discord.Member,
        shortcode: str,
        preferred_name: str,
        legal_name: str,
        fresher: FresherStatus = FresherStatus.NONE
    ):
        record = MemberRecord(
            identity=user.id,
            shortcode=shortcode,
            legal_name=legal_name,
            preferred_name=preferred_name,
            fresher=fresher,
        )
        if not await add_entry(interaction, record, user):
            return

        roles = interaction.client.roles
        grants = [discord.Object(id=roles.member)]
        fresher_role = roles.fresher_role(fresher)
        if fresher_role:
            grants.append(discord.Object(id=fresher_role))
        await user.add_roles(*grants, reason=f"Added by {interaction.user}")
        await reply(interaction, f"Added {user.mention} as a member")

    @app_commands.command(name="delete", description="Delete a member, revoking their member and fresher roles")
    async def delete(self, interaction: discord.Interaction, user: discord.Member, remove_roles: bool = True):
        if not await delete_entry(interaction, self.table, user):
            await reply(interaction, f"No member entry found for {user.mention}")
            return
        if remove_roles:
            roles = interaction.client.roles
            await revoke_roles(
                user,
                (roles.member, roles.undergraduate_fresher, roles.postgraduate_fresher),
                reason=f"Deleted by {interaction.user}",
            )
        await reply(interaction, f"Deleted member entry for {user.mention}")

    @app_commands.command(name="edit", description="Edit a field of a member entry")
    async def edit(
        self,
        interaction: discord.Interaction,
        user: discord.Member,
        field: Literal["shortcode", "preferred_name", "legal_name", "fresher"],
        value: str
    ):
        record = await _store(interaction).update(self.table, user.id, **{field: value})
        logger.info(f"{interaction.user} edited {field} of member {user.id}")
        await reply(interaction, f"Updated {user.mention}\n```\n{describe(record)}\n```")

    @app_commands.command(name="clear-freshers", description="Mark every member as a non-fresher and remove fresher roles")
    async def clear_freshers(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        changed = await _store(interaction).clear_freshers()
        stripped = await strip_fresher_roles(
            interaction.guild.fetch_members(limit=None),
            interaction.client.roles,
            reason=f"Fresher roles cleared by {interaction.user}",
        )
        logger.info(f"{interaction.user} cleared {changed} freshers, {stripped} role holders")
        await reply(interaction, f"Cleared fresher status of {changed} members and fresher roles of {stripped} users")

    @app_commands.command(name="refresh-non-members", description="Give the non-member role to everyone without a role")
    async def refresh_non_members(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        role_id = interaction.client.roles.non_member
        granted = await grant_non_member_role(
            interaction.guild.fetch_members(limit=None),
            role_id,
            reason=f"Non-member refresh by {interaction.user}",
        )
        logger.info(f"{interaction.user} gave the non-member role to {granted} users")
        await reply(interaction, f"{granted} users given <@&{role_id}> role")


class ExtraGroup(AdminGroup):
    table = RecordTable.EXTRAS

    def __init__(self):
        super().__init__(name="extra", description="Guests from other universities")

    @app_commands.command(name="count", description="Number of entries")
    async def count(self, interaction: discord.Interaction):
        await count_entries(interaction, self.table)

    @app_commands.command(name="get", description="Get an entry, or every entry if no user is given")
    async def get(self, interaction: discord.Interaction, user: Optional[discord.Member] = None):
        await get_entries(interaction, self.table, user)

    @app_commands.command(name="find", description="Find guests by name (exact)")
    async def find(self, interaction: discord.Interaction, name: str):
        records = await _store(interaction).find_extra(name)
        if not records:
            await reply(interaction, f"No extras entry found for name {name}")
        else:
            await reply(interaction, f"Extras named {name}: {mentions(records)}")

    @app_commands.command(name="add", description="Add a guest and grant the extra role")
    async def add(self, interaction: discord.Interaction, user: discord.Member, name: str, university: str):
        record = ExtraRecord(identity=user.id, name=name.strip(), university=university.strip())
        if not await add_entry(interaction, record, user):
            return
        extra_role = interaction.client.settings.EXTRA_ROLE_ID
        if extra_role:
            await user.add_roles(discord.Object(id=extra_role), reason=f"Added by {interaction.user}")
        await reply(interaction, f"Added {user.mention} to extras")

    @app_commands.command(name="delete", description="Delete a guest, revoking the extra role")
    async def delete(self, interaction: discord.Interaction, user: discord.Member, remove_roles: bool = True):
        if not await delete_entry(interaction, self.table, user):
            await reply(interaction, f"No extras entry found for {user.mention}")
            return
        extra_role = interaction.client.settings.EXTRA_ROLE_ID
        if remove_roles and extra_role:
            await revoke_roles(user, (extra_role,), reason=f"Deleted by {interaction.user}")
        await reply(interaction, f"Deleted extras entry for {user.mention}")

    @app_commands.command(name="edit", description="Edit a field of an extras entry")
    async def edit(
        self,
        interaction: discord.Interaction,
        user: discord.Member,
        field: Literal["name", "university"],
        value: str
    ):
        record = await _store(interaction).update(self.table, user.id, **{field: value.strip()})
        await reply(interaction, f"Updated {user.mention}\n```\n{describe(record)}\n```")


def register_commands(tree: app_commands.CommandTree) -> None:
    tree.add_command(setup_command)
    for group in (WhoisGroup(), MemberGroup(), PendingGroup(), ManualGroup(), ExtraGroup()):
        tree.add_command(group)

    @tree.error
    async def on_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError):
        cause = getattr(error, "original", error)
        if isinstance(cause, RosterError):
            logger.error(f"Roster command {interaction.command and interaction.command.qualified_name} failed: {cause}")
            content = f"Database error: {cause}"
        elif isinstance(cause, ValueError):
            content = f"Invalid value: {cause}"
        else:
            logger.error(f"Command failed: {error}", exc_info=cause)
            content = "Sorry, something went wrong"
        await reply(interaction, content)
