# Content fetcher: downloads candidate images one at a time, enforcing the
# upload size ceiling and pacing consecutive downloads.
#
# Usage:
#   from services import media
#   assets = await media.fetch_assets(candidates, max_bytes=8_388_608, delay_ms=800)
#   for asset in assets:
#       asset.data, asset.name

import asyncio
import re
from urllib.parse import urlparse

import aiohttp

import services.logger as log
from services.message import Asset, Candidate

l = log.get_logger()

_DEFAULT_MAX = 8 * 1024 * 1024  # 8 MiB (Discord upload limit without boosts)
_DEFAULT_DELAY_MS = 800

_MAX_NAME_LEN = 120

_EXT_RE = re.compile(r"\.[a-z0-9]{2,6}$", re.IGNORECASE)
_IMAGE_SUBTYPE_RE = re.compile(r"image/([a-z0-9.+-]+)", re.IGNORECASE)
_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9._-]")

_session: aiohttp.ClientSession | None = None


def _get_session() -> aiohttp.ClientSession:
    global _session
    if _session is None or _session.closed:
        _session = aiohttp.ClientSession()
    return _session


async def close() -> None:
    """Close the shared download session, if one was opened."""
    global _session
    if _session is not None and not _session.closed:
        await _session.close()
    _session = None


def _mb(n: int) -> str:
    return f"{n / 1024 / 1024:.2f}"


async def fetch(url: str, max_bytes: int = _DEFAULT_MAX) -> tuple[bytes, str] | None:
    """
    Download *url*, refusing anything larger than *max_bytes*.

    Returns ``(data, content_type)`` on success, or ``None`` if the URL is
    empty, the server answers with a non-2xx status, the transfer fails, or
    the payload is oversized.  A single attempt is made.
    """
    if not url:
        return None

    session = _get_session()

    try:
        async with session.get(url) as resp:
            if not 200 <= resp.status < 300:
                l.warning(f"media.fetch: download failed {url!r} -> HTTP {resp.status}")
                return None

            declared = resp.content_length
            if declared is not None and declared > max_bytes:
                l.warning(
                    f"media.fetch: skipping {url!r} ({_mb(declared)} MB) "
                    f"> max upload size ({_mb(max_bytes)} MB)"
                )
                return None

            chunks: list[bytes] = []
            total = 0
            async for chunk in resp.content.iter_chunked(65536):
                total += len(chunk)
                if total > max_bytes:
                    l.warning(
                        f"media.fetch: skipping {url!r} (more than {_mb(total)} MB) "
                        f"> max upload size ({_mb(max_bytes)} MB)"
                    )
                    return None
                chunks.append(chunk)
            return b"".join(chunks), resp.headers.get("Content-Type", "")

    except Exception as e:
        l.warning(f"media.fetch failed for {url!r}: {e}")
        return None


def filename_for(url: str, content_type: str) -> str:
    """Derive a filename from the URL path, adding an extension if needed.

    The last non-empty path segment wins (``"image"`` when there is none).
    Without a plausible extension one is taken from the ``image/<subtype>``
    of *content_type*, defaulting to ``jpg``.
    """
    name = "image"
    try:
        segments = [s for s in urlparse(url).path.split("/") if s]
        if segments:
            name = segments[-1]
    except ValueError:
        pass

    if not _EXT_RE.search(name):
        m = _IMAGE_SUBTYPE_RE.search(content_type or "")
        ext = m.group(1).replace("+", "") if m else "jpg"
        name = f"{name}.{ext}"
    return name


def sanitize_filename(name: str) -> str:
    """Replace characters outside ``[A-Za-z0-9._-]`` with ``_``, cap at 120."""
    return _UNSAFE_CHARS_RE.sub("_", name)[:_MAX_NAME_LEN]


async def fetch_assets(
    candidates: list[Candidate],
    max_bytes: int = _DEFAULT_MAX,
    delay_ms: int = _DEFAULT_DELAY_MS,
) -> list[Asset]:
    """
    Download *candidates* sequentially and return the ones that succeeded.

    Failed or oversized candidates are skipped, not replaced.  A known
    candidate name is preferred over the one derived from the URL.  Every
    download after the first waits *delay_ms* to throttle traffic.
    """
    assets: list[Asset] = []
    for i, cand in enumerate(candidates):
        if i and delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)

        result = await fetch(cand.url, max_bytes)
        if result is None:
            l.warning(f"media: skipping url (download failed): {cand.url}")
            continue

        data, content_type = result
        name = sanitize_filename(cand.name or filename_for(cand.url, content_type))
        assets.append(Asset(data=data, name=name))
        l.debug(f"media: fetched {name} ({len(data)} bytes)")
    return assets
