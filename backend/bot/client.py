"""
Nano Discord client.

Routes every button press and modal submission to the verification engine
and registers the slash commands on the configured guild.
"""

import logging

import discord
from discord import app_commands

from config import Settings
from logging_config import clear_interaction_context, set_interaction_context
from roster import RosterStore
from sentry_integration import capture_exception
from services.membership_roster import MembershipRosterClient
from verify import RoleIds, VerifyDispatcher

from .commands import register_commands
from .gateway import DiscordMember, DiscordNotifier
from .render import defer, deliver, modal_values, respond, should_defer

logger = logging.getLogger(__name__)

_ROUTED_INTERACTIONS = (discord.InteractionType.component, discord.InteractionType.modal_submit)


class NanoBot(discord.Client):
    def __init__(self, settings: Settings, store: RosterStore, roster_client: MembershipRosterClient):
        intents = discord.Intents.default()
        # Role sweeps page through every guild member
        intents.members = True
        super().__init__(intents=intents)
        self.settings = settings
        self.store = store
        self.roles = RoleIds.from_settings(settings)
        self.tree = app_commands.CommandTree(self)
        self.notifier = DiscordNotifier(
            self,
            guild_id=settings.GUILD_ID,
            audit_channel_id=settings.AUDIT_CHANNEL_ID,
            general_channel_id=settings.GENERAL_CHANNEL_ID,
        )
        contact = f"<@{settings.CONTACT_USER_ID}>" if settings.CONTACT_USER_ID else "a committee member"
        self.dispatcher = VerifyDispatcher.build(
            store=store,
            notifier=self.notifier,
            roles=self.roles,
            roster_client=roster_client,
            login_url=settings.login_url_for,
            contact=contact,
        )

    async def setup_hook(self) -> None:
        register_commands(self.tree)
        if self.settings.GUILD_ID:
            guild = discord.Object(id=self.settings.GUILD_ID)
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info(f"Synced {len(synced)} commands to guild {self.settings.GUILD_ID}")

    async def on_ready(self) -> None:
        logger.info(f"Discord client ready as {self.user}")

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        if interaction.type not in _ROUTED_INTERACTIONS:
            return

        data = interaction.data or {}
        custom_id = data.get("custom_id", "")
        set_interaction_context(interaction.id, interaction.user.id, custom_id)
        try:
            if not isinstance(interaction.user, discord.Member):
                await respond(interaction, self.dispatcher.session.unknown())
                return

            # Acknowledge first when the engine may run past the response deadline
            deferred = should_defer(interaction.type, custom_id)
            if deferred:
                await defer(interaction)

            member = DiscordMember(interaction.user)
            if interaction.type is discord.InteractionType.component:
                result = await self.dispatcher.handle_component(member, custom_id)
            else:
                result = await self.dispatcher.handle_modal(member, custom_id, modal_values(data))

            if deferred:
                await deliver(interaction, result)
            else:
                await respond(interaction, result)
        except discord.HTTPException as e:
            logger.error(f"Responding to interaction {interaction.id} failed: {e}")
            capture_exception(e, custom_id=custom_id)
        finally:
            clear_interaction_context()
