# Discord bus.
#
# Receive: logs in with the bot token and listens on the gateway.
#          Creates arrive via on_message; edits and deletes use the raw
#          events so they fire for messages sent before the bot started
#          (i.e. not in discord.py's message cache).
#
# Send:    posts into the target channel as the bot.  Images are re-uploaded
#          as files and every mention is suppressed so mirrors never ping.
#
# Required intents: guilds, guild messages, and the privileged message
# content intent (enable it in the Developer Portal), otherwise attachments
# and embeds arrive empty.

import io

import discord

import services.logger as log
from services.message import Asset, Attachment, Embed, OriginMessage
from drivers import BaseBus, BusResult

l = log.get_logger()


def author_tag(user) -> str | None:
    """``name#1234`` for legacy accounts, plain ``name`` for migrated ones."""
    name = getattr(user, "name", None)
    if not name:
        return None
    discriminator = getattr(user, "discriminator", None)
    if discriminator and discriminator != "0":
        return f"{name}#{discriminator}"
    return name


def to_origin(message: discord.Message) -> OriginMessage:
    """Convert a discord.py message into the bridge's platform-agnostic form."""
    channel = getattr(message, "channel", None)
    author = getattr(message, "author", None)
    return OriginMessage(
        id=str(message.id),
        channel_id=str(channel.id) if channel is not None else None,
        author=author_tag(author),
        author_is_bot=bool(getattr(author, "bot", False)),
        attachments=[
            Attachment(url=a.url, content_type=a.content_type, filename=a.filename)
            for a in message.attachments
        ],
        embeds=[
            Embed(image_url=e.image.url, thumbnail_url=e.thumbnail.url, url=e.url)
            for e in message.embeds
        ],
    )


class DiscordBus(BaseBus):

    def __init__(self, token: str):
        super().__init__()
        self._token = token

        intents = discord.Intents.default()
        intents.message_content = True
        self._client = discord.Client(intents=intents)

        self._client.event(self.on_ready)
        self._client.event(self.on_message)
        self._client.event(self.on_raw_message_edit)
        self._client.event(self.on_raw_message_delete)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self):
        # Blocks until the bot disconnects
        await self._client.start(self._token)

    async def close(self):
        if not self._client.is_closed():
            await self._client.close()

    # ------------------------------------------------------------------
    # Receive
    # ------------------------------------------------------------------

    async def on_ready(self):
        l.info(f"Discord logged in as {self._client.user}")

    async def on_message(self, message: discord.Message):
        if self.bridge is None:
            return
        await self.bridge.on_create(to_origin(message))

    async def on_raw_message_edit(self, payload: discord.RawMessageUpdateEvent):
        if self.bridge is None:
            return

        channel_id = str(payload.channel_id)
        if not self.bridge.is_source_channel(channel_id):
            return

        # payload.message is post-edit; cached_message is the pre-edit copy
        message = getattr(payload, "message", None)
        if message is not None:
            await self.bridge.on_update(to_origin(message))
            return

        result = await self.fetch_message(channel_id, str(payload.message_id))
        if not result.ok:
            l.warning(f"Discord: cannot resolve edited message {payload.message_id}: {result.error}")
            return
        await self.bridge.on_update(result.value)

    async def on_raw_message_delete(self, payload: discord.RawMessageDeleteEvent):
        if self.bridge is None:
            return
        await self.bridge.on_delete(str(payload.message_id))

    # ------------------------------------------------------------------
    # Bus operations
    # ------------------------------------------------------------------

    async def fetch_channel(self, channel_id: str) -> BusResult[discord.abc.Messageable]:
        try:
            ch = self._client.get_channel(int(channel_id))
            if ch is None:
                ch = await self._client.fetch_channel(int(channel_id))
        except (ValueError, discord.HTTPException, discord.InvalidData) as e:
            return BusResult.failure(e)

        if not isinstance(ch, discord.abc.Messageable):
            return BusResult.failure(TypeError(f"channel {channel_id} is not text-based"))
        return BusResult.success(ch)

    async def fetch_message(self, channel_id: str, message_id: str) -> BusResult[OriginMessage]:
        ch = await self.fetch_channel(channel_id)
        if not ch.ok:
            return BusResult.failure(ch.error)
        try:
            message = await ch.value.fetch_message(int(message_id))
        except (ValueError, discord.HTTPException) as e:
            return BusResult.failure(e)
        return BusResult.success(to_origin(message))

    async def send(
        self,
        channel: discord.abc.Messageable,
        content: str,
        assets: list[Asset] | None = None,
    ) -> BusResult[str]:
        kwargs: dict = {"allowed_mentions": discord.AllowedMentions.none()}
        if assets:
            kwargs["files"] = [
                discord.File(io.BytesIO(a.data), filename=a.name) for a in assets
            ]
        try:
            sent = await channel.send(content, **kwargs)
        except discord.HTTPException as e:
            return BusResult.failure(e)
        return BusResult.success(str(sent.id))

    async def delete(self, channel: discord.abc.Messageable, message_id: str) -> BusResult[None]:
        try:
            message = await channel.fetch_message(int(message_id))
            await message.delete()
        except (ValueError, discord.HTTPException) as e:
            return BusResult.failure(e)
        return BusResult.success()
