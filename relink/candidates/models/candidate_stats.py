from dataclasses import dataclass

from .candidate import Candidate


@dataclass(slots=True)
class CandidateStats:
    """Snapshot of the candidate pool for status reporting."""

    total: int
    failed_count: int
    current: Candidate | None
    last_fetch_time: float
    """Wall-clock time (epoch seconds) of the last remote fetch, 0 if never."""
