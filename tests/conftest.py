import pytest

from drivers import BaseBus, BusResult
from services import media
from services.bridge import MirrorBridge
from services.config_schema import MirrorConfig
from services.ledger import MirrorLedger
from services.message import Attachment, Embed, OriginMessage

SOURCE = "111"
TARGET = "999"


class FakeBus(BaseBus):
    """Records outbound calls instead of talking to a platform."""

    def __init__(self):
        super().__init__()
        self.sent: list[tuple[str, list]] = []
        self.deleted: list[str] = []
        self.existing: set[str] = set()
        self.fail_channel = False
        self.fail_send = False
        self._next_id = 5000

    async def start(self):
        pass

    async def close(self):
        pass

    async def fetch_channel(self, channel_id):
        if self.fail_channel:
            return BusResult.failure(LookupError(f"unknown channel {channel_id}"))
        return BusResult.success(f"channel:{channel_id}")

    async def fetch_message(self, channel_id, message_id):
        return BusResult.failure(LookupError("not supported"))

    async def send(self, channel, content, assets=None):
        if self.fail_send:
            return BusResult.failure(RuntimeError("send failed"))
        self._next_id += 1
        mirror_id = str(self._next_id)
        self.sent.append((content, list(assets or [])))
        self.existing.add(mirror_id)
        return BusResult.success(mirror_id)

    async def delete(self, channel, message_id):
        self.deleted.append(message_id)
        if message_id not in self.existing:
            return BusResult.failure(LookupError(f"unknown message {message_id}"))
        self.existing.discard(message_id)
        return BusResult.success()


@pytest.fixture
def cfg():
    return MirrorConfig(
        discord_token="test-token-abcdefgh",
        source_channels=SOURCE,
        target_channel=TARGET,
        upload_delay_ms=0,
    )


@pytest.fixture
def bus():
    return FakeBus()


@pytest.fixture
def ledger():
    return MirrorLedger()


@pytest.fixture
def bridge(cfg, bus, ledger):
    b = MirrorBridge(cfg, bus, ledger)
    bus.attach(b)
    return b


class Remote:
    """Fake download source: ``remote.files[url] = (bytes, content_type)``."""

    def __init__(self):
        self.files: dict[str, tuple[bytes, str]] = {}
        self.calls: list[str] = []

    async def fetch(self, url, max_bytes=media._DEFAULT_MAX):
        self.calls.append(url)
        result = self.files.get(url)
        if result is None or len(result[0]) > max_bytes:
            return None
        return result


@pytest.fixture
def remote(monkeypatch):
    """Replace network downloads; unknown URLs fail like an unreachable host."""
    r = Remote()
    monkeypatch.setattr(media, "fetch", r.fetch)
    return r


def make_message(
    id="1",
    channel_id=SOURCE,
    author="alice#0001",
    attachments=(),
    embeds=(),
    bot=False,
):
    return OriginMessage(
        id=id,
        channel_id=channel_id,
        author=author,
        author_is_bot=bot,
        attachments=list(attachments),
        embeds=list(embeds),
    )


def image_attachment(name="cat.png", content_type="image/png"):
    return Attachment(
        url=f"https://cdn.example.com/attachments/{name}",
        content_type=content_type,
        filename=name,
    )


def embed(image_url=None, thumbnail_url=None, url=None):
    return Embed(image_url=image_url, thumbnail_url=thumbnail_url, url=url)
