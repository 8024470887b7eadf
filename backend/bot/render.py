"""
Rendering of engine replies as Discord messages, views and modals.

Views are never registered with the client: every component and modal
submission is routed by custom_id in NanoBot.on_interaction, which keeps
buttons working across restarts.
"""

from typing import List, Union

import discord

from verify.tokens import SEPARATOR, Step
from verify.ui import Button, ButtonStyle, Card, Modal, Reply, ReplyMode

MODAL_TIMEOUT_SECONDS = 600

_STYLES = {
    ButtonStyle.PRIMARY: discord.ButtonStyle.primary,
    ButtonStyle.SECONDARY: discord.ButtonStyle.secondary,
    ButtonStyle.SUCCESS: discord.ButtonStyle.success,
    ButtonStyle.DANGER: discord.ButtonStyle.danger,
    ButtonStyle.LINK: discord.ButtonStyle.link,
}


def render_card(card: Card) -> discord.Embed:
    embed = discord.Embed(title=card.title, description=card.description, timestamp=card.timestamp)
    if card.thumbnail:
        embed.set_thumbnail(url=card.thumbnail)
    if card.image:
        embed.set_image(url=card.image)
    for name, value in card.fields:
        embed.add_field(name=name, value=value or "-", inline=True)
    return embed


def render_view(buttons: List[Button]) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    for button in buttons:
        view.add_item(discord.ui.Button(
            style=_STYLES[button.style],
            label=button.label,
            emoji=button.emoji,
            custom_id=button.token,
            url=button.url,
        ))
    view.stop()
    return view


def render_modal(modal: Modal) -> discord.ui.Modal:
    rendered = discord.ui.Modal(title=modal.title, custom_id=modal.token, timeout=MODAL_TIMEOUT_SECONDS)
    for field in modal.fields:
        rendered.add_item(discord.ui.TextInput(
            label=field.label,
            custom_id=field.key,
            placeholder=field.placeholder,
            min_length=field.min_length,
            max_length=field.max_length,
            style=discord.TextStyle.paragraph if field.paragraph else discord.TextStyle.short,
        ))
    return rendered


def modal_values(data: dict) -> dict:
    """Field values of a modal submission keyed by field custom_id."""
    values = {}
    for row in data.get("components", []):
        children = row.get("components") or [row.get("component") or {}]
        for child in children:
            if "custom_id" in child:
                values[child["custom_id"]] = child.get("value") or ""
    return values


def _message_kwargs(result: Reply) -> dict:
    kwargs = {}
    if result.content:
        kwargs["content"] = result.content
    if result.card:
        kwargs["embed"] = render_card(result.card)
    if result.buttons:
        kwargs["view"] = render_view(result.buttons)
    return kwargs


def should_defer(interaction_type: discord.InteractionType, custom_id: str) -> bool:
    """
    Whether the engine may outlive the 3 second response deadline.

    Modal submissions and committee decisions write records and then call
    the role, channel and membership APIs before a reply exists.
    """
    if interaction_type is discord.InteractionType.modal_submit:
        return True
    return custom_id.startswith(f"{Step.REVIEW.value}{SEPARATOR}")


async def defer(interaction: discord.Interaction) -> None:
    if interaction.message is not None:
        await interaction.response.defer()
    else:
        await interaction.response.defer(ephemeral=True, thinking=True)


async def respond(interaction: discord.Interaction, result: Union[Reply, Modal]) -> None:
    """Answer an interaction with an engine reply or modal."""
    if isinstance(result, Modal):
        await interaction.response.send_modal(render_modal(result))
        return

    if result.mode is ReplyMode.UPDATE and interaction.message is not None:
        await interaction.response.edit_message(
            content=result.content,
            embed=render_card(result.card) if result.card else None,
            view=render_view(result.buttons) if result.buttons else None,
        )
        return

    await interaction.response.send_message(ephemeral=result.ephemeral, **_message_kwargs(result))


async def deliver(interaction: discord.Interaction, result: Reply) -> None:
    """Send an engine reply after the interaction was deferred."""
    if result.mode is ReplyMode.UPDATE and interaction.message is not None:
        await interaction.edit_original_response(
            content=result.content,
            embed=render_card(result.card) if result.card else None,
            view=render_view(result.buttons) if result.buttons else None,
        )
        return

    await interaction.followup.send(ephemeral=result.ephemeral, **_message_kwargs(result))
