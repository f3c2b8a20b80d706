"""
Failover controller.

Runs the failover state machine against the real world: turns node
library events, timers and host calls into events, stores the state the
machine returns, and executes its effects.

Effects that only touch timers or in-memory pool state run inline during
dispatch. Effects that await (logging, persistence, directory fetches,
candidate resolution, connection attempts) run in order inside one
tracked task per dispatch and feed their outcomes back as events. A failing
effect does not stop the ones after it, except that a failed candidate
resolution or connection attempt is fed back as AttemptFailed.

Usage:
    controller = FailoverController(
        ConnectionSupervisor(manager),
        CandidatePool(env.get_pool_config()),
        config=env.get_failover_config(),
    )

    await controller.initialize()
    ...
    await controller.destroy()
"""

import asyncio
import random
import sys
import time
from typing import Any, Callable

from relink.candidates import CandidatePool
from relink.connection import (
    ConnectionSupervisor,
    DisconnectReason,
    NodeConfig,
    NodeConnection,
)
from relink.logging import Logger
from relink.logging.relink_logging_models import (
    NodeCritical,
    NodeError,
    NodeInfo,
)

from .failover_state_machine import FailoverStateMachine
from .models import (
    AttemptFailed,
    AttemptSucceeded,
    CancelReconnect,
    CandidateResolved,
    Connect,
    Connected,
    ConnectionState,
    CooldownElapsed,
    Disconnected,
    Emit,
    ErrorRaised,
    FailoverConfig,
    FailoverEffect,
    FailoverEvent,
    FailoverStatus,
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
from .timer_slot import IntervalSlot, TimerSlot


class FailoverController:
    def __init__(
        self,
        supervisor: ConnectionSupervisor,
        pool: CandidatePool,
        config: FailoverConfig | None = None,
        logger: Logger | None = None,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self._supervisor = supervisor
        self._pool = pool
        self._config = config or FailoverConfig()
        self._logger = logger or Logger()
        self._clock = clock

        self._machine = FailoverStateMachine(self._config, rng=rng)
        self._state = ConnectionState()

        self._reconnect_timer = TimerSlot("reconnect")
        self._trigger_timer = TimerSlot("trigger")
        self._startup_watchdog = TimerSlot("startup")
        self._health_check = IntervalSlot("health_check")
        self._periodic_reset = IntervalSlot("periodic_reset")

        self._effect_tasks: set[asyncio.Task] = set()
        self._subscribed = False
        self._initialized = False
        self._closed = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def config(self) -> FailoverConfig:
        return self._config

    @property
    def pool(self) -> CandidatePool:
        return self._pool

    @property
    def supervisor(self) -> ConnectionSupervisor:
        return self._supervisor

    async def initialize(self, startup_scan: bool = True) -> bool:
        """
        Subscribe to node events, run the startup scan, and start monitoring.

        Returns True if a node is connected when startup finishes. Calling
        it again is a no-op.
        """
        if self._initialized:
            return self._supervisor.is_connected()

        self._initialized = True
        self._subscribe()

        if startup_scan and self._supervisor.is_ready():
            await self._pool.fetch()
            await self._supervisor.fast_scan(
                self._pool,
                per_attempt_timeout=self._config.connect_timeout,
            )

        connected = self._supervisor.is_connected()
        self._dispatch(StartupCompleted(at=self._clock(), connected=connected))

        self._startup_watchdog.schedule(
            self._config.startup_warning_after,
            self._check_startup,
        )

        await self._logger.log(
            NodeInfo(
                message="Failover controller initialized",
                node_key=self._state.current_node_key,
            ),
            name="relink",
        )

        return connected

    def _subscribe(self) -> None:
        manager = self._supervisor.manager
        if manager is None or self._subscribed:
            return

        manager.on("connect", self.on_connect)
        manager.on("error", self.on_error)
        manager.on("disconnect", self.on_disconnect)
        self._subscribed = True

    def _unsubscribe(self) -> None:
        manager = self._supervisor.manager
        if manager is None or not self._subscribed:
            return

        manager.off("connect", self.on_connect)
        manager.off("error", self.on_error)
        manager.off("disconnect", self.on_disconnect)
        self._subscribed = False

    async def _check_startup(self) -> None:
        if self._state.has_had_successful_connection:
            return

        minutes = self._config.startup_warning_after / 60
        await self._logger.log(
            NodeCritical(
                message=f"No node connection established {minutes:g} minutes after startup",
                reconnect_attempts=self._state.reconnect_attempts,
                nodes_tried=self._state.nodes_tried_this_cycle,
            ),
            name="relink",
        )

    # ===== Node library events =====

    def _owns(self, connection: NodeConnection) -> bool:
        return getattr(connection, "node_id", None) == self._supervisor.node_id

    def on_connect(self, connection: NodeConnection) -> None:
        if not self._owns(connection):
            return

        current = self._pool.current
        self._dispatch(
            Connected(
                at=self._clock(),
                node_key=current.key if current else None,
            )
        )

    def on_error(self, connection: NodeConnection, error: Any) -> None:
        if self._owns(connection):
            self._dispatch(ErrorRaised(at=self._clock(), error=error))

    def on_disconnect(self, connection: NodeConnection, reason: Any) -> None:
        if self._owns(connection):
            self._dispatch(
                Disconnected(
                    at=self._clock(),
                    reason=DisconnectReason.parse(reason),
                )
            )

    # ===== Host API =====

    def is_available(self) -> bool:
        return self._supervisor.is_connected()

    def get_status(self) -> FailoverStatus:
        return FailoverStatus(
            is_connected=self._supervisor.is_connected(),
            phase=self._state.phase,
            reconnect_attempts=self._state.reconnect_attempts,
            max_reconnect_attempts=self._config.max_reconnect_attempts,
            nodes_tried_this_cycle=self._state.nodes_tried_this_cycle,
            total_nodes_in_cycle=self._state.total_nodes_in_cycle,
            is_reconnecting=self._state.is_reconnecting,
            is_waiting_for_reset=self._state.is_waiting_for_reset,
            last_ping=self._state.last_ping,
            candidate_stats=self._pool.stats(),
        )

    def attempt_reconnection(self, force: bool = False) -> None:
        self._dispatch(
            ReconnectRequested(
                at=self._clock(),
                connected=self._supervisor.is_connected(),
                ready=self._supervisor.is_ready(),
                force=force,
            )
        )

    def force_node_switch(self) -> None:
        self._dispatch(NodeSwitchForced(at=self._clock()))

    async def wait_idle(self) -> None:
        """Wait until no effect task is running."""
        while self._effect_tasks:
            await asyncio.gather(
                *list(self._effect_tasks),
                return_exceptions=True,
            )

    async def destroy(self) -> None:
        """Cancel every timer and in-flight effect, then tear down all nodes."""
        if self._closed:
            return

        self._closed = True
        self._unsubscribe()

        for slot in (
            self._reconnect_timer,
            self._trigger_timer,
            self._startup_watchdog,
        ):
            slot.cancel()

        self._health_check.stop()
        self._periodic_reset.stop()

        tasks = list(self._effect_tasks)
        for task in tasks:
            task.cancel()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._effect_tasks.clear()

        await self._supervisor.shutdown()
        await self._pool.close()

        await self._logger.log(
            NodeInfo(
                message="Failover controller destroyed",
                node_key=self._state.current_node_key,
            ),
            name="relink",
        )

    # ===== Dispatch =====

    def _dispatch(self, event: FailoverEvent) -> None:
        if self._closed:
            return

        self._state, effects = self._machine.transition(self._state, event)

        deferred: list[FailoverEffect] = []

        for effect in effects:
            if not self._run_inline(effect):
                deferred.append(effect)

        if deferred:
            task = asyncio.create_task(self._run_effects(deferred))
            self._effect_tasks.add(task)
            task.add_done_callback(self._effect_tasks.discard)

    def _run_inline(self, effect: FailoverEffect) -> bool:
        if isinstance(effect, StartMonitoring):
            self._health_check.start(
                self._config.health_check_interval,
                self._on_health_check,
            )
            self._periodic_reset.start(
                self._config.periodic_reset_interval,
                self._on_periodic_reset,
            )

        elif isinstance(effect, StopMonitoring):
            self._health_check.stop()
            self._periodic_reset.stop()

        elif isinstance(effect, CancelReconnect):
            self._reconnect_timer.cancel()

        elif isinstance(effect, ScheduleRetry):
            self._reconnect_timer.schedule(effect.delay, self._on_retry_timer)

        elif isinstance(effect, ScheduleCooldown):
            self._reconnect_timer.schedule(effect.delay, self._on_cooldown_elapsed)

        elif isinstance(effect, ScheduleTrigger):
            self._trigger_timer.schedule(effect.delay, self.attempt_reconnection)

        elif isinstance(effect, ResetCandidates):
            self._pool.invalidate()

        else:
            return False

        return True

    async def _run_effects(self, effects: list[FailoverEffect]) -> None:
        for effect in effects:
            try:
                await self._execute(effect)

            except asyncio.CancelledError:
                raise

            except Exception as error:
                # A failed log write never ends the chain.
                if isinstance(effect, Emit):
                    continue

                await self._report_effect_failure(effect, error)

                if isinstance(effect, (ResolveCandidate, Connect)):
                    node_key = (
                        effect.candidate.key
                        if isinstance(effect, Connect)
                        else self._state.current_node_key
                    )
                    self._dispatch(
                        AttemptFailed(
                            at=self._clock(),
                            node_key=node_key,
                            error=error,
                        )
                    )

                    return

    async def _report_effect_failure(
        self,
        effect: FailoverEffect,
        error: Exception,
    ) -> None:
        try:
            await self._logger.log(
                NodeError(
                    message=f"Failover effect {type(effect).__name__} failed: {error}",
                    node_key=self._state.current_node_key,
                    reconnect_attempts=self._state.reconnect_attempts,
                    nodes_tried=self._state.nodes_tried_this_cycle,
                ),
                name="relink",
            )

        except Exception as log_error:
            sys.stderr.write(
                f"relink: failover effect {type(effect).__name__} failed: {error}"
                f" (logging failed: {log_error})\n"
            )

    async def _execute(self, effect: FailoverEffect) -> None:
        if isinstance(effect, Emit):
            await self._logger.log(effect.entry, name="relink")

        elif isinstance(effect, MarkWorking):
            await self._pool.mark_working()

        elif isinstance(effect, RefreshCandidates):
            self._pool.invalidate()
            await self._pool.fetch(force=True)

        elif isinstance(effect, ResolveCandidate):
            await self._resolve_candidate(effect)

        elif isinstance(effect, Connect):
            await self._connect(effect)

        elif isinstance(effect, RequestReconnect):
            self.attempt_reconnection(force=effect.force)

    async def _resolve_candidate(self, effect: ResolveCandidate) -> None:
        initialized = False

        if effect.switch:
            candidate = await self._pool.next_candidate()

        elif self._pool.current is not None:
            candidate = self._pool.current

        else:
            candidate = await self._pool.initial_candidate()
            initialized = True

        self._dispatch(
            CandidateResolved(
                at=self._clock(),
                candidate=candidate,
                pool_size=self._pool.size,
                switched=effect.switch,
                initialized=initialized,
            )
        )

    async def _connect(self, effect: Connect) -> None:
        result = await self._supervisor.connect_once(
            NodeConfig.from_candidate(
                effect.candidate,
                node_id=self._supervisor.node_id,
            ),
            timeout=effect.timeout,
        )

        if result.success:
            self._dispatch(
                AttemptSucceeded(
                    at=self._clock(),
                    node_key=result.node_key,
                )
            )

        else:
            self._dispatch(
                AttemptFailed(
                    at=self._clock(),
                    node_key=result.node_key,
                    error=result.error,
                )
            )

    # ===== Timers =====

    def _on_retry_timer(self) -> None:
        self._dispatch(
            RetryTimerFired(
                at=self._clock(),
                connected=self._supervisor.is_connected(),
                ready=self._supervisor.is_ready(),
            )
        )

    def _on_cooldown_elapsed(self) -> None:
        self._dispatch(CooldownElapsed(at=self._clock()))

    def _on_health_check(self) -> None:
        self._dispatch(
            HealthTick(
                at=self._clock(),
                connected=self._supervisor.is_connected(),
                ready=self._supervisor.is_ready(),
            )
        )

    def _on_periodic_reset(self) -> None:
        self._dispatch(
            ResetTick(
                at=self._clock(),
                connected=self._supervisor.is_connected(),
                ready=self._supervisor.is_ready(),
            )
        )
