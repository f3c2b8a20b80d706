from .backoff import reconnect_delay as reconnect_delay
from .error_classifier import (
    classify_disconnect as classify_disconnect,
    classify_error as classify_error,
    is_timeout as is_timeout,
)
from .failover_controller import FailoverController as FailoverController
from .failover_state_machine import FailoverStateMachine as FailoverStateMachine
from .models import (
    ConnectionState as ConnectionState,
    CooldownReason as CooldownReason,
    ErrorClass as ErrorClass,
    FailoverConfig as FailoverConfig,
    FailoverPhase as FailoverPhase,
    FailoverStatus as FailoverStatus,
)
from .timer_slot import (
    IntervalSlot as IntervalSlot,
    TimerSlot as TimerSlot,
)
