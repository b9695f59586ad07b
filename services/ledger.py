import services.logger as log

l = log.get_logger()


class MirrorLedger:
    """Maps origin message IDs to the IDs of their mirrors in the target channel.

    Lives in memory only, so mirror links are lost on restart.  There is no
    eviction and no locking: handlers mutate it directly and the last writer
    wins.
    """

    def __init__(self):
        self._entries: dict[str, str] = {}

    def record(self, origin_id: str, mirror_id: str):
        """Store (or replace) the mirror for *origin_id*."""
        previous = self._entries.get(origin_id)
        self._entries[origin_id] = mirror_id
        if previous is None:
            l.debug(f"Ledger: {origin_id} -> {mirror_id}")
        else:
            l.debug(f"Ledger: {origin_id} -> {mirror_id} (was {previous})")

    def lookup(self, origin_id: str) -> str | None:
        """Return the mirror ID for *origin_id*, or None if it is not mirrored."""
        return self._entries.get(origin_id)

    def remove(self, origin_id: str):
        """Forget *origin_id*; a no-op if it has no entry."""
        if self._entries.pop(origin_id, None) is not None:
            l.debug(f"Ledger: removed {origin_id}")

    def __contains__(self, origin_id: str) -> bool:
        return origin_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
