"""
Discord implementations of the verification collaborators.
"""

import logging
from typing import List, Optional

import discord

from verify.gateway import NotificationError, RoleGatewayError
from verify.ui import Button, Card

from .render import render_card, render_view

logger = logging.getLogger(__name__)

AUDIT_REASON = "Nano verification"


class DiscordMember:
    """MemberHandle over a discord.Member, owned by one interaction."""

    def __init__(self, member: discord.Member):
        self._member = member
        self.id = member.id
        self.name = str(member)
        self.mention = member.mention
        self.avatar_url = member.display_avatar.url

    async def add_role(self, role_id: int) -> None:
        try:
            await self._member.add_roles(discord.Object(id=role_id), reason=AUDIT_REASON)
        except discord.HTTPException as e:
            raise RoleGatewayError(f"Adding role {role_id} to {self.id} failed: {e}") from e

    async def remove_role(self, role_id: int) -> None:
        try:
            await self._member.remove_roles(discord.Object(id=role_id), reason=AUDIT_REASON)
        except discord.HTTPException as e:
            raise RoleGatewayError(f"Removing role {role_id} from {self.id} failed: {e}") from e

    async def has_role(self, role_id: int) -> bool:
        # Roles may have changed since the interaction payload was built
        try:
            self._member = await self._member.guild.fetch_member(self.id)
        except discord.HTTPException as e:
            raise RoleGatewayError(f"Fetching roles of {self.id} failed: {e}") from e
        return any(role.id == role_id for role in self._member.roles)


class DiscordNotifier:
    """Committee audit channel, public welcome channel and member lookup."""

    def __init__(self, client: discord.Client, guild_id: int, audit_channel_id: int, general_channel_id: int):
        self.client = client
        self.guild_id = guild_id
        self.audit_channel_id = audit_channel_id
        self.general_channel_id = general_channel_id

    async def _channel(self, channel_id: int) -> discord.abc.Messageable:
        channel = self.client.get_channel(channel_id)
        if channel is None:
            channel = await self.client.fetch_channel(channel_id)
        return channel

    async def send_audit(self, card: Card, buttons: Optional[List[Button]] = None) -> None:
        kwargs = {"embed": render_card(card)}
        if buttons:
            kwargs["view"] = render_view(buttons)
        try:
            channel = await self._channel(self.audit_channel_id)
            await channel.send(**kwargs)
        except discord.HTTPException as e:
            raise NotificationError(f"Audit channel post failed: {e}") from e

    async def send_welcome(self, content: str) -> None:
        try:
            channel = await self._channel(self.general_channel_id)
            await channel.send(content)
        except discord.HTTPException as e:
            raise NotificationError(f"Welcome post failed: {e}") from e

    async def fetch_member(self, identity: int) -> Optional[DiscordMember]:
        try:
            guild = self.client.get_guild(self.guild_id) or await self.client.fetch_guild(self.guild_id)
            member = guild.get_member(identity) or await guild.fetch_member(identity)
        except discord.NotFound:
            return None
        except discord.HTTPException as e:
            raise RoleGatewayError(f"Fetching member {identity} failed: {e}") from e
        return DiscordMember(member)
