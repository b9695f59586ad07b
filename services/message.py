from dataclasses import dataclass, field


@dataclass
class Attachment:
    """A file attached to an origin message."""
    url: str
    content_type: str | None = None  # declared MIME type, may be missing
    filename: str | None = None


@dataclass
class Embed:
    """The image-bearing parts of a rich embed."""
    image_url: str | None = None
    thumbnail_url: str | None = None
    url: str | None = None  # the embed's own link, for direct image links


@dataclass
class OriginMessage:
    """Platform-agnostic view of a source-channel message."""
    id: str
    channel_id: str | None
    author: str | None        # display tag, e.g. "alice#0001"
    author_is_bot: bool = False
    attachments: list[Attachment] = field(default_factory=list)
    embeds: list[Embed] = field(default_factory=list)


@dataclass
class Candidate:
    """An image URL eligible for mirroring."""
    url: str
    name: str | None = None  # known filename (attachments only)


@dataclass
class Asset:
    """A downloaded candidate ready to be re-uploaded."""
    data: bytes
    name: str
