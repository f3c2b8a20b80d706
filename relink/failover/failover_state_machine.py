"""
Pure failover transitions.

``FailoverStateMachine.transition(state, event)`` returns the next
``ConnectionState`` and the effects to run. It never touches the network,
the clock or timers; ``FailoverController`` feeds it events and executes
the effects it returns.

Phases:
- IDLE: connected, or between attempts with no reconnection in flight.
- RECONNECTING: the reconnection guard is held. Further requests are
  dropped until the attempt resolves, a retry timer fires, or the guard
  is held longer than ``guard_timeout``.
- WAITING_FOR_RESET: every option is spent. Only ``CooldownElapsed``
  leaves this phase.
"""

import dataclasses
import random

from relink.logging.models import Entry
from relink.logging.relink_logging_models import (
    NodeDebug,
    NodeError,
    NodeInfo,
    NodeWarning,
)

from .backoff import reconnect_delay
from .error_classifier import classify_disconnect, classify_error
from .models import (
    AttemptFailed,
    AttemptSucceeded,
    CancelReconnect,
    CandidateResolved,
    Connect,
    Connected,
    ConnectionState,
    CooldownElapsed,
    CooldownReason,
    Disconnected,
    Emit,
    ErrorClass,
    ErrorRaised,
    FailoverConfig,
    FailoverEffect,
    FailoverEvent,
    FailoverPhase,
    HealthTick,
    MarkWorking,
    NodeSwitchForced,
    ReconnectRequested,
    RefreshCandidates,
    RequestReconnect,
    ResetCandidates,
    ResetTick,
    ResolveCandidate,
    RetryTimerFired,
    ScheduleCooldown,
    ScheduleRetry,
    ScheduleTrigger,
    StartMonitoring,
    StartupCompleted,
    StopMonitoring,
)


Transition = tuple[ConnectionState, list[FailoverEffect]]


class FailoverStateMachine:
    def __init__(
        self,
        config: FailoverConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config or FailoverConfig()
        self._rng = rng or random.Random()

        self._handlers = {
            Connected: self._on_connected,
            ErrorRaised: self._on_error,
            Disconnected: self._on_disconnected,
            HealthTick: self._on_health_tick,
            ResetTick: self._on_reset_tick,
            ReconnectRequested: self._on_reconnect_requested,
            RetryTimerFired: self._on_retry_timer_fired,
            CandidateResolved: self._on_candidate_resolved,
            AttemptSucceeded: self._on_attempt_succeeded,
            AttemptFailed: self._on_attempt_failed,
            CooldownElapsed: self._on_cooldown_elapsed,
            NodeSwitchForced: self._on_node_switch_forced,
            StartupCompleted: self._on_startup_completed,
        }

    @property
    def config(self) -> FailoverConfig:
        return self._config

    def transition(
        self,
        state: ConnectionState,
        event: FailoverEvent,
    ) -> Transition:
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unknown failover event: {type(event).__name__}")

        return handler(state, event)

    def _entry(
        self,
        entry_type: type[Entry],
        message: str,
        state: ConnectionState,
        classification: ErrorClass | None = None,
    ) -> Emit:
        return Emit(
            entry_type(
                message=message,
                node_key=state.current_node_key,
                reconnect_attempts=state.reconnect_attempts,
                nodes_tried=state.nodes_tried_this_cycle,
                classification=classification.value if classification else None,
            )
        )

    def _start_monitoring(self, state: ConnectionState) -> list[FailoverEffect]:
        state.health_check_active = True
        state.periodic_reset_active = True
        return [StartMonitoring()]

    def _stop_monitoring(self, state: ConnectionState) -> list[FailoverEffect]:
        state.health_check_active = False
        state.periodic_reset_active = False
        return [StopMonitoring()]

    # ===== Library events =====

    def _on_connected(self, state: ConnectionState, event: Connected) -> Transition:
        next_state = dataclasses.replace(
            state,
            phase=FailoverPhase.IDLE,
            is_connected=True,
            has_had_successful_connection=True,
            reconnect_attempts=0,
            nodes_tried_this_cycle=0,
            should_switch_node=False,
            last_ping=event.at,
            reconnect_started_at=None,
            cooldown_reason=None,
            current_node_key=event.node_key or state.current_node_key,
        )

        effects: list[FailoverEffect] = [
            CancelReconnect(),
            MarkWorking(),
            *self._start_monitoring(next_state),
            self._entry(NodeInfo, "Node connection established", next_state),
        ]

        return next_state, effects

    def _on_error(self, state: ConnectionState, event: ErrorRaised) -> Transition:
        if not state.has_had_successful_connection:
            return state, []

        classification = classify_error(event.error)
        next_state = dataclasses.replace(state)

        if classification == ErrorClass.AUTHENTICATION:
            next_state.should_switch_node = True
            next_state.reconnect_attempts = self._config.max_reconnect_attempts

        effects: list[FailoverEffect] = [
            self._entry(
                NodeError,
                f"Node error: {event.error}",
                next_state,
                classification=classification,
            ),
        ]

        if classification == ErrorClass.AUTHENTICATION:
            effects.append(ScheduleTrigger(self._config.auth_error_delay))

        elif classification == ErrorClass.CONNECTIVITY:
            effects.append(ScheduleTrigger(self._config.connectivity_error_delay))

        return next_state, effects

    def _on_disconnected(
        self,
        state: ConnectionState,
        event: Disconnected,
    ) -> Transition:
        if not state.has_had_successful_connection:
            return state, []

        classification = classify_disconnect(event.reason)
        next_state = dataclasses.replace(state, is_connected=False)

        if classification == ErrorClass.AUTHENTICATION:
            next_state.should_switch_node = True
            next_state.reconnect_attempts = self._config.max_reconnect_attempts

        code = f" (code {event.reason.code})" if event.reason.code is not None else ""
        effects: list[FailoverEffect] = [
            self._entry(
                NodeWarning,
                f"Node disconnected: {event.reason.reason}{code}",
                next_state,
                classification=classification,
            ),
            *self._stop_monitoring(next_state),
        ]

        if event.reason.intentional:
            return next_state, effects

        effects.append(ScheduleTrigger(self._disconnect_delay(classification)))

        return next_state, effects

    def _disconnect_delay(self, classification: ErrorClass) -> float:
        match classification:
            case ErrorClass.AUTHENTICATION:
                return self._config.auth_disconnect_delay

            case ErrorClass.NO_PING:
                return self._config.no_ping_disconnect_delay

            case ErrorClass.TIMEOUT:
                return self._config.timeout_disconnect_delay

            case _:
                return self._config.default_disconnect_delay

    # ===== Monitoring =====

    def _on_health_tick(self, state: ConnectionState, event: HealthTick) -> Transition:
        if event.connected:
            next_state = dataclasses.replace(
                state,
                is_connected=True,
                last_ping=event.at,
                reconnect_attempts=0,
            )

            return next_state, []

        next_state = dataclasses.replace(state, is_connected=False)
        next_state, effects = self._attempt(
            next_state,
            event.at,
            connected=False,
            ready=event.ready,
            force=False,
        )

        if effects:
            effects.insert(
                0,
                self._entry(NodeWarning, "Health check: node not connected", next_state),
            )

        return next_state, effects

    def _on_reset_tick(self, state: ConnectionState, event: ResetTick) -> Transition:
        stale = event.at - state.last_ping > self._config.ping_timeout

        if event.connected and not stale:
            return state, []

        next_state = dataclasses.replace(state, reconnect_attempts=0)
        next_state, effects = self._attempt(
            next_state,
            event.at,
            connected=event.connected,
            ready=event.ready,
            force=False,
        )

        effects.insert(
            0,
            self._entry(
                NodeInfo,
                "Periodic reset: ping stale, node still reports connected"
                if event.connected
                else "Periodic reset: node not connected",
                next_state,
            ),
        )

        return next_state, effects

    # ===== Reconnection =====

    def _on_reconnect_requested(
        self,
        state: ConnectionState,
        event: ReconnectRequested,
    ) -> Transition:
        return self._attempt(
            state,
            event.at,
            connected=event.connected,
            ready=event.ready,
            force=event.force,
        )

    def _on_retry_timer_fired(
        self,
        state: ConnectionState,
        event: RetryTimerFired,
    ) -> Transition:
        if state.phase != FailoverPhase.RECONNECTING:
            return self._attempt(
                state,
                event.at,
                connected=event.connected,
                ready=event.ready,
                force=False,
            )

        released = dataclasses.replace(
            state,
            phase=FailoverPhase.IDLE,
            reconnect_started_at=None,
        )

        # A retry always runs, even if the old handle still reports connected.
        return self._attempt(
            released,
            event.at,
            connected=event.connected,
            ready=event.ready,
            force=True,
        )

    def _attempt(
        self,
        state: ConnectionState,
        at: float,
        connected: bool,
        ready: bool,
        force: bool,
    ) -> Transition:
        effects: list[FailoverEffect] = []

        if state.phase == FailoverPhase.WAITING_FOR_RESET:
            return state, effects

        if state.phase == FailoverPhase.RECONNECTING:
            started = state.reconnect_started_at
            held = at - started if started is not None else 0.0

            if held <= self._config.guard_timeout:
                return state, effects

            state = dataclasses.replace(
                state,
                phase=FailoverPhase.IDLE,
                reconnect_started_at=None,
            )

            effects.append(
                self._entry(
                    NodeWarning,
                    f"Reconnection guard held for {held:.0f}s, forcing release",
                    state,
                )
            )

        if not ready:
            return state, effects

        if connected and not force:
            if state.is_connected:
                return state, effects

            return dataclasses.replace(state, is_connected=True), effects

        switch = state.should_switch_node
        next_state = dataclasses.replace(
            state,
            phase=FailoverPhase.RECONNECTING,
            reconnect_started_at=at,
            should_switch_node=False,
        )

        effects.extend(
            [
                self._entry(
                    NodeDebug,
                    "Switching node" if switch else "Attempting reconnection",
                    next_state,
                ),
                ResolveCandidate(switch=switch),
            ]
        )

        return next_state, effects

    def _on_candidate_resolved(
        self,
        state: ConnectionState,
        event: CandidateResolved,
    ) -> Transition:
        if state.phase != FailoverPhase.RECONNECTING:
            return state, []

        if event.candidate is None:
            return self._enter_cooldown(
                state,
                CooldownReason.NO_CANDIDATES,
                reset_pool=False,
            )

        next_state = dataclasses.replace(
            state,
            current_node_key=event.candidate.key,
        )

        if event.switched:
            next_state.reconnect_attempts = 0
            next_state.total_nodes_in_cycle = max(event.pool_size, 1)

        elif event.initialized or next_state.total_nodes_in_cycle == 0:
            next_state.total_nodes_in_cycle = max(event.pool_size, 1)

        return next_state, [
            self._entry(NodeInfo, f"Connecting to {event.candidate.key}", next_state),
            Connect(
                candidate=event.candidate,
                timeout=self._config.connect_timeout,
            ),
        ]

    def _on_attempt_succeeded(
        self,
        state: ConnectionState,
        event: AttemptSucceeded,
    ) -> Transition:
        if state.phase != FailoverPhase.RECONNECTING:
            return state, []

        next_state = dataclasses.replace(
            state,
            phase=FailoverPhase.IDLE,
            is_connected=True,
            reconnect_attempts=0,
            reconnect_started_at=None,
            current_node_key=event.node_key,
        )

        effects: list[FailoverEffect] = [
            self._entry(NodeInfo, f"Reconnected to {event.node_key}", next_state),
        ]

        # The connect event normally arrives first and has already done this.
        if not next_state.has_had_successful_connection or not next_state.monitoring:
            next_state.has_had_successful_connection = True
            next_state.last_ping = event.at
            effects.extend([MarkWorking(), *self._start_monitoring(next_state)])

        return next_state, effects

    def _on_attempt_failed(
        self,
        state: ConnectionState,
        event: AttemptFailed,
    ) -> Transition:
        if state.phase != FailoverPhase.RECONNECTING:
            return state, []

        max_attempts = self._config.max_reconnect_attempts
        classification = classify_error(event.error)
        next_state = dataclasses.replace(state, is_connected=False)

        if classification == ErrorClass.AUTHENTICATION:
            next_state.reconnect_attempts = max_attempts

        else:
            next_state.reconnect_attempts = min(
                next_state.reconnect_attempts + 1,
                max_attempts,
            )

        effects: list[FailoverEffect] = [
            self._entry(
                NodeWarning,
                f"Reconnection attempt {next_state.reconnect_attempts}/{max_attempts} failed: {event.error}",
                next_state,
                classification=classification,
            ),
        ]

        if next_state.reconnect_attempts < max_attempts:
            effects.append(
                ScheduleRetry(
                    reconnect_delay(
                        next_state.reconnect_attempts,
                        self._config.base_delay,
                        self._config.max_delay,
                        jitter=self._config.jitter,
                        rng=self._rng,
                    )
                )
            )

            return next_state, effects

        next_state.nodes_tried_this_cycle += 1

        if next_state.nodes_tried_this_cycle < next_state.total_nodes_in_cycle:
            next_state.should_switch_node = True
            next_state.reconnect_attempts = 0

            effects.extend(
                [
                    self._entry(
                        NodeWarning,
                        f"Switching node ({next_state.nodes_tried_this_cycle}/{next_state.total_nodes_in_cycle} tried)",
                        next_state,
                    ),
                    ScheduleRetry(self._config.node_switch_delay),
                ]
            )

            return next_state, effects

        next_state, cooldown_effects = self._enter_cooldown(
            next_state,
            CooldownReason.EXHAUSTED,
            reset_pool=True,
        )

        return next_state, effects + cooldown_effects

    # ===== Cooldown =====

    def _enter_cooldown(
        self,
        state: ConnectionState,
        reason: CooldownReason,
        reset_pool: bool,
    ) -> Transition:
        next_state = dataclasses.replace(
            state,
            phase=FailoverPhase.WAITING_FOR_RESET,
            reconnect_started_at=None,
            cooldown_reason=reason,
        )

        minutes = self._config.reset_after / 60
        message = (
            f"All {next_state.total_nodes_in_cycle} nodes failed"
            if reason == CooldownReason.EXHAUSTED
            else "No nodes available"
        )

        effects: list[FailoverEffect] = [
            *self._stop_monitoring(next_state),
            self._entry(
                NodeError,
                f"{message}. Will retry after {minutes:g} minutes",
                next_state,
            ),
        ]

        if reset_pool:
            effects.append(ResetCandidates())

        effects.append(ScheduleCooldown(self._config.reset_after))

        return next_state, effects

    def _on_cooldown_elapsed(
        self,
        state: ConnectionState,
        event: CooldownElapsed,
    ) -> Transition:
        if state.phase != FailoverPhase.WAITING_FOR_RESET:
            return state, []

        next_state = dataclasses.replace(
            state,
            phase=FailoverPhase.IDLE,
            reconnect_attempts=0,
            nodes_tried_this_cycle=0,
            total_nodes_in_cycle=0,
            cooldown_reason=None,
            should_switch_node=True,
        )

        return next_state, [
            self._entry(NodeInfo, "Cooldown elapsed, starting a new cycle", next_state),
            RefreshCandidates(),
            *self._start_monitoring(next_state),
            RequestReconnect(force=True),
        ]

    # ===== Host requests =====

    def _on_node_switch_forced(
        self,
        state: ConnectionState,
        event: NodeSwitchForced,
    ) -> Transition:
        if state.phase == FailoverPhase.WAITING_FOR_RESET:
            return state, []

        next_state = dataclasses.replace(
            state,
            should_switch_node=True,
            reconnect_attempts=0,
        )

        return next_state, [
            self._entry(NodeWarning, "Forcing node switch", next_state),
            RequestReconnect(force=True),
        ]

    def _on_startup_completed(
        self,
        state: ConnectionState,
        event: StartupCompleted,
    ) -> Transition:
        next_state = dataclasses.replace(
            state,
            is_connected=event.connected,
            has_had_successful_connection=(
                state.has_had_successful_connection or event.connected
            ),
            last_ping=event.at if event.connected else state.last_ping,
        )

        effects = self._start_monitoring(next_state)

        if not event.connected:
            effects.append(
                self._entry(
                    NodeWarning,
                    "Startup finished without a node connection, monitoring will keep retrying",
                    next_state,
                )
            )

        return next_state, effects
