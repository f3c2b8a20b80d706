from .connection_state import ConnectionState as ConnectionState
from .error_class import ErrorClass as ErrorClass
from .failover_config import FailoverConfig as FailoverConfig
from .failover_effects import (
    CancelReconnect as CancelReconnect,
    Connect as Connect,
    Emit as Emit,
    FailoverEffect as FailoverEffect,
    MarkWorking as MarkWorking,
    RefreshCandidates as RefreshCandidates,
    RequestReconnect as RequestReconnect,
    ResetCandidates as ResetCandidates,
    ResolveCandidate as ResolveCandidate,
    ScheduleCooldown as ScheduleCooldown,
    ScheduleRetry as ScheduleRetry,
    ScheduleTrigger as ScheduleTrigger,
    StartMonitoring as StartMonitoring,
    StopMonitoring as StopMonitoring,
)
from .failover_events import (
    AttemptFailed as AttemptFailed,
    AttemptSucceeded as AttemptSucceeded,
    CandidateResolved as CandidateResolved,
    Connected as Connected,
    CooldownElapsed as CooldownElapsed,
    Disconnected as Disconnected,
    ErrorRaised as ErrorRaised,
    FailoverEvent as FailoverEvent,
    HealthTick as HealthTick,
    NodeSwitchForced as NodeSwitchForced,
    ReconnectRequested as ReconnectRequested,
    ResetTick as ResetTick,
    RetryTimerFired as RetryTimerFired,
    StartupCompleted as StartupCompleted,
)
from .failover_phase import (
    CooldownReason as CooldownReason,
    FailoverPhase as FailoverPhase,
)
from .failover_status import FailoverStatus as FailoverStatus
