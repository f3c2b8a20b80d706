from dataclasses import dataclass

from relink.candidates.models import CandidateStats

from .failover_phase import FailoverPhase


@dataclass(slots=True)
class FailoverStatus:
    """Status snapshot exposed to the host application."""

    is_connected: bool
    phase: FailoverPhase
    reconnect_attempts: int
    max_reconnect_attempts: int
    nodes_tried_this_cycle: int
    total_nodes_in_cycle: int
    is_reconnecting: bool
    is_waiting_for_reset: bool
    last_ping: float
    candidate_stats: CandidateStats
