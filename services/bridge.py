from typing import TYPE_CHECKING

import services.logger as log
from services import media
from services.config_schema import MirrorConfig
from services.error import catch_and_log
from services.extract import extract_candidates
from services.ledger import MirrorLedger
from services.message import Asset, Candidate, OriginMessage

if TYPE_CHECKING:
    from drivers import BaseBus

l = log.get_logger()

_UNKNOWN_AUTHOR = "Unknown#0000"
_UNKNOWN_CHANNEL = "unknown-channel"


def build_header(msg: OriginMessage, edited: bool = False) -> str:
    """Return the bold-author header placed above every mirror."""
    header = f"**{msg.author or _UNKNOWN_AUTHOR}** from <#{msg.channel_id or _UNKNOWN_CHANNEL}>"
    return f"{header} (edited)" if edited else header


def build_content(header: str, candidates: list[Candidate], assets: list[Asset]) -> str:
    """Header alone when files are attached, otherwise header plus the raw URLs."""
    if assets:
        return header
    return header + "\n" + "\n".join(c.url for c in candidates)


class MirrorBridge:
    """
    Forwarding engine.

    The bus calls ``on_create`` / ``on_update`` / ``on_delete`` for every
    message event it sees; the bridge decides whether to create, replace or
    delete the mirror in the target channel and keeps the ledger in step.
    Each handler logs and swallows its own exceptions.
    """

    def __init__(self, config: MirrorConfig, bus: "BaseBus", ledger: MirrorLedger):
        self.config = config
        self.bus = bus
        self.ledger = ledger
        self._sources: frozenset[str] = frozenset(config.source_channels)

    def is_source_channel(self, channel_id: str | None) -> bool:
        return bool(channel_id) and channel_id in self._sources

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def on_create(self, msg: OriginMessage):
        with catch_and_log(f"create {msg.id}"):
            if msg.author_is_bot:
                return
            if not self.is_source_channel(msg.channel_id):
                return

            candidates = extract_candidates(msg)
            if not candidates:
                return

            target = await self._target_channel()
            if target is None:
                return

            await self._send_mirror(target, msg, candidates, edited=False)

    async def on_update(self, msg: OriginMessage):
        with catch_and_log(f"update {msg.id}"):
            if not self.is_source_channel(msg.channel_id):
                return

            candidates = extract_candidates(msg)
            mirror_id = self.ledger.lookup(msg.id)

            if not candidates:
                if mirror_id is None:
                    return
                target = await self._target_channel()
                if target is None:
                    return
                l.info(f"Origin {msg.id} no longer has images; removing mirror {mirror_id}")
                await self._delete_mirror(target, msg.id, mirror_id)
                return

            target = await self._target_channel()
            if target is None:
                return

            if mirror_id is not None:
                # Attachments can't be edited in place: drop the old mirror
                # and post a fresh one.
                l.info(f"Origin {msg.id} edited; replacing mirror {mirror_id}")
                await self._delete_mirror(target, msg.id, mirror_id)
            else:
                l.info(f"Origin {msg.id} edited and not yet mirrored; mirroring now")

            await self._send_mirror(target, msg, candidates, edited=True)

    async def on_delete(self, origin_id: str):
        with catch_and_log(f"delete {origin_id}"):
            mirror_id = self.ledger.lookup(origin_id)
            if mirror_id is None:
                return

            target = await self._target_channel()
            if target is None:
                return

            l.info(f"Origin {origin_id} deleted; removing mirror {mirror_id}")
            await self._delete_mirror(target, origin_id, mirror_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _target_channel(self):
        result = await self.bus.fetch_channel(self.config.target_channel)
        if not result.ok or result.value is None:
            l.error(
                f"Cannot resolve target channel {self.config.target_channel}: "
                f"{result.error}; event dropped"
            )
            return None
        return result.value

    async def _send_mirror(
        self,
        target,
        msg: OriginMessage,
        candidates: list[Candidate],
        edited: bool,
    ):
        assets = await media.fetch_assets(
            candidates,
            max_bytes=self.config.max_upload_bytes,
            delay_ms=self.config.upload_delay_ms,
        )
        if not assets:
            l.warning(f"No image of {msg.id} could be fetched; sending URLs as text")

        content = build_content(build_header(msg, edited), candidates, assets)
        result = await self.bus.send(target, content, assets)
        if not result.ok or result.value is None:
            l.error(f"Failed to send mirror for {msg.id}: {result.error}")
            # Whatever mirror the ledger pointed at has already been deleted.
            self.ledger.remove(msg.id)
            return

        self.ledger.record(msg.id, result.value)
        l.info(f"Mirrored {msg.id} -> {result.value} ({len(assets)} file(s))")

    async def _delete_mirror(self, target, origin_id: str, mirror_id: str):
        result = await self.bus.delete(target, mirror_id)
        if not result.ok:
            # Already gone or not ours to delete: treat it as absent.
            l.warning(f"Could not delete mirror {mirror_id} of {origin_id}: {result.error}")
        self.ledger.remove(origin_id)
