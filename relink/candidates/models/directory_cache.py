import msgspec

from .candidate import Candidate


class DirectoryCache(msgspec.Struct, kw_only=True):
    """On-disk snapshot of the last directory fetch."""

    timestamp: int
    """Epoch milliseconds when the snapshot was written."""

    nodes: list[Candidate] = msgspec.field(default_factory=list)
