from dataclasses import dataclass

from .failover_phase import CooldownReason, FailoverPhase


@dataclass(slots=True)
class ConnectionState:
    """
    Failover bookkeeping. Only ``FailoverStateMachine.transition`` produces
    new values and only ``FailoverController`` stores them.
    """

    phase: FailoverPhase = FailoverPhase.IDLE
    is_connected: bool = False
    has_had_successful_connection: bool = False
    reconnect_attempts: int = 0
    nodes_tried_this_cycle: int = 0
    total_nodes_in_cycle: int = 0
    should_switch_node: bool = False
    last_ping: float = 0.0
    reconnect_started_at: float | None = None
    cooldown_reason: CooldownReason | None = None
    current_node_key: str | None = None
    health_check_active: bool = False
    periodic_reset_active: bool = False

    @property
    def is_reconnecting(self) -> bool:
        return self.phase == FailoverPhase.RECONNECTING

    @property
    def is_waiting_for_reset(self) -> bool:
        return self.phase == FailoverPhase.WAITING_FOR_RESET

    @property
    def monitoring(self) -> bool:
        return self.health_check_active and self.periodic_reset_active
