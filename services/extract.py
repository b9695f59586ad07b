# Image extraction: decides which parts of an origin message carry images
# and returns them as an ordered list of download candidates.
#
# Usage:
#   from services.extract import extract_candidates
#   candidates = extract_candidates(msg)
#   if not candidates:
#       ...  # nothing to mirror

import re

from services.message import Attachment, Candidate, Embed, OriginMessage

_IMAGE_EXT_RE = re.compile(r"\.(jpe?g|png|gif|webp|bmp|svg|avif)$", re.IGNORECASE)


def is_image_attachment(att: Attachment) -> bool:
    """Return True if *att* looks like an image.

    A declared content type is authoritative.  Without one, fall back to the
    extension of the filename or the URL.
    """
    if att.content_type:
        return att.content_type.startswith("image")
    return bool(
        _IMAGE_EXT_RE.search(att.filename or "")
        or _IMAGE_EXT_RE.search(att.url or "")
    )


def embed_image_url(embed: Embed) -> str | None:
    """Return the single URL an embed contributes, or None."""
    return embed.image_url or embed.thumbnail_url or embed.url or None


def extract_candidates(msg: OriginMessage) -> list[Candidate]:
    """Image attachments first (original order), then one URL per embed."""
    candidates = [
        Candidate(url=att.url, name=att.filename or None)
        for att in msg.attachments
        if is_image_attachment(att)
    ]
    for embed in msg.embeds:
        url = embed_image_url(embed)
        if url:
            candidates.append(Candidate(url=url))
    return candidates
