"""
Tests for the failover controller running against the mock node library.

All delays are shrunk to milliseconds so full failover cycles complete
within a test.
"""

from typing import AsyncGenerator, Callable

import pytest

from relink.candidates import CandidatePool, CandidateStore, PoolConfig
from relink.connection import ConnectionSupervisor
from relink.failover import FailoverConfig, FailoverController, FailoverPhase
from relink.logging.relink_logging_models import NodeCritical, NodeDebug, NodeError

from tests.unit.mocks import (
    REFUSE,
    FlakyLogger,
    MockDirectoryClient,
    MockHealthProbe,
    MockNodeManager,
    RecordingLogger,
    make_record,
    wait_for_condition,
)


def fast_config(**overrides) -> FailoverConfig:
    values = dict(
        base_delay=0.001,
        max_delay=0.005,
        jitter=0.001,
        node_switch_delay=0.001,
        connect_timeout=0.2,
        auth_error_delay=0.01,
        connectivity_error_delay=0.01,
        auth_disconnect_delay=0.01,
        no_ping_disconnect_delay=0.01,
        timeout_disconnect_delay=0.01,
        default_disconnect_delay=0.01,
        health_check_interval=10.0,
        periodic_reset_interval=10.0,
        reset_after=10.0,
        startup_warning_after=10.0,
    )
    values.update(overrides)

    return FailoverConfig(**values)


RECORDS = [
    make_record("alpha.example"),
    make_record("bravo.example"),
    make_record("charlie.example"),
]


@pytest.fixture
async def controller_factory(
    pool_config: PoolConfig,
) -> AsyncGenerator[Callable[..., FailoverController], None]:
    controllers: list[FailoverController] = []

    def create_controller(
        manager: MockNodeManager,
        records=None,
        config: FailoverConfig | None = None,
        probe: MockHealthProbe | None = None,
        logger: RecordingLogger | None = None,
    ) -> FailoverController:
        logger = logger or RecordingLogger()
        pool = CandidatePool(
            pool_config,
            directory=MockDirectoryClient(primary=RECORDS if records is None else records),
            probe=probe or MockHealthProbe(),
            store=CandidateStore(pool_config.data_directory),
            logger=logger,
        )
        controller = FailoverController(
            ConnectionSupervisor(manager, logger=logger),
            pool,
            config=config or fast_config(),
            logger=logger,
        )
        controllers.append(controller)

        return controller

    yield create_controller

    for controller in controllers:
        await controller.destroy()


class TestInitialize:
    """Tests for controller startup."""

    async def test_connects_and_starts_monitoring(self, controller_factory):
        manager = MockNodeManager()
        controller = controller_factory(manager)

        connected = await controller.initialize()
        await controller.wait_idle()

        assert connected is True
        assert controller.is_available() is True
        assert controller.state.has_had_successful_connection is True
        assert controller._health_check.running is True
        assert controller._periodic_reset.running is True
        assert manager.handler_count() == 3
        assert manager.connected_keys() == ["alpha.example:2333"]

    async def test_initialize_twice_is_a_noop(self, controller_factory):
        manager = MockNodeManager()
        controller = controller_factory(manager)

        await controller.initialize()
        await controller.initialize()

        assert len(manager.created) == 1
        assert manager.handler_count() == 3

    async def test_startup_watchdog_logs_critical(self, controller_factory):
        manager = MockNodeManager(default_behavior=REFUSE)
        controller = controller_factory(
            manager,
            config=fast_config(startup_warning_after=0.02),
        )

        await controller.initialize()

        logger = controller._logger
        assert await wait_for_condition(lambda: logger.of_type(NodeCritical))


class TestFailover:
    """Tests for reconnection and node switching."""

    async def test_reconnects_after_drop(self, controller_factory):
        manager = MockNodeManager()
        controller = controller_factory(manager)
        await controller.initialize()
        await controller.wait_idle()

        manager.drop("Connection lost", code=1006)

        assert await wait_for_condition(lambda: len(manager.created) == 2)
        assert await wait_for_condition(controller.is_available)
        assert manager.connected_keys() == ["alpha.example:2333"]
        assert controller.state.phase == FailoverPhase.IDLE

    async def test_force_node_switch_moves_to_next_node(
        self,
        controller_factory,
        pool_config: PoolConfig,
    ):
        manager = MockNodeManager()
        controller = controller_factory(manager)
        await controller.initialize()
        await controller.wait_idle()

        controller.force_node_switch()

        assert await wait_for_condition(
            lambda: manager.connected_keys() == ["bravo.example:2333"]
        )
        await controller.wait_idle()

        assert manager.handles[0].destroyed is True
        assert controller._health_check.running is True
        assert CandidateStore(pool_config.data_directory).load_node().host == "bravo.example"

    async def test_exhausted_cycle_enters_single_cooldown(self, controller_factory):
        manager = MockNodeManager(default_behavior=REFUSE)
        controller = controller_factory(manager)

        connected = await controller.initialize()
        assert connected is False

        controller.attempt_reconnection()

        assert await wait_for_condition(
            lambda: controller.state.is_waiting_for_reset,
            timeout=5.0,
        )
        await controller.wait_idle()

        status = controller.get_status()
        assert status.phase == FailoverPhase.WAITING_FOR_RESET
        assert status.is_waiting_for_reset is True
        assert status.nodes_tried_this_cycle == 3
        assert status.reconnect_attempts <= status.max_reconnect_attempts
        assert controller._reconnect_timer.pending is True
        assert controller._health_check.running is False
        assert controller.pool.failed_keys == frozenset()

        controller.attempt_reconnection()
        controller.force_node_switch()
        await controller.wait_idle()

        assert controller.state.is_waiting_for_reset is True

    async def test_empty_directory_cooldown_then_recovery(self, controller_factory):
        manager = MockNodeManager()
        controller = controller_factory(
            manager,
            records=[],
            config=fast_config(reset_after=0.1),
        )

        await controller.initialize()
        controller.attempt_reconnection()
        await controller.wait_idle()

        assert controller.state.is_waiting_for_reset is True
        assert controller._reconnect_timer.scheduled == 1
        assert manager.created == []

        controller.pool._directory.primary = RECORDS

        assert await wait_for_condition(controller.is_available, timeout=2.0)
        await controller.wait_idle()

        assert controller.state.phase == FailoverPhase.IDLE
        assert controller._reconnect_timer.scheduled == 1
        assert manager.connected_keys() == ["alpha.example:2333"]

    async def test_failing_effect_is_logged_and_counted(
        self,
        controller_factory,
        monkeypatch,
    ):
        manager = MockNodeManager()
        controller = controller_factory(
            manager,
            config=fast_config(base_delay=10.0, max_delay=10.0),
        )
        await controller.initialize()
        await controller.wait_idle()

        async def broken_connect(config, timeout=15.0):
            raise RuntimeError("adapter crashed")

        monkeypatch.setattr(controller.supervisor, "connect_once", broken_connect)

        controller.force_node_switch()

        assert await wait_for_condition(
            lambda: controller.state.reconnect_attempts == 1
        )

        errors = controller._logger.of_type(NodeError)
        assert any("adapter crashed" in (entry.message or "") for entry in errors)
        assert controller._reconnect_timer.pending is True


    async def test_failed_log_write_does_not_stall_reconnection(
        self,
        controller_factory,
    ):
        manager = MockNodeManager()
        logger = FlakyLogger(fail_on=NodeDebug)
        controller = controller_factory(manager, logger=logger)
        await controller.initialize()
        await controller.wait_idle()

        logger.failures = 1
        manager.drop("Connection lost", code=1006)

        assert await wait_for_condition(lambda: len(manager.created) == 2)
        assert await wait_for_condition(controller.is_available)
        await controller.wait_idle()

        assert logger.failures == 0
        assert controller.state.phase == FailoverPhase.IDLE
        assert manager.connected_keys() == ["alpha.example:2333"]

    async def test_failed_attempt_is_counted_when_error_logging_fails(
        self,
        controller_factory,
        monkeypatch,
    ):
        manager = MockNodeManager()
        logger = FlakyLogger(fail_on=NodeError)
        controller = controller_factory(
            manager,
            config=fast_config(base_delay=10.0, max_delay=10.0),
            logger=logger,
        )
        await controller.initialize()
        await controller.wait_idle()

        async def broken_connect(config, timeout=15.0):
            raise RuntimeError("adapter crashed")

        monkeypatch.setattr(controller.supervisor, "connect_once", broken_connect)
        logger.failures = 100

        controller.force_node_switch()

        assert await wait_for_condition(
            lambda: controller.state.reconnect_attempts == 1
        )
        assert controller.state.phase == FailoverPhase.RECONNECTING
        assert controller._reconnect_timer.pending is True

class TestStatusAndShutdown:
    """Tests for status reporting and teardown."""

    async def test_status_reports_candidate_stats(self, controller_factory):
        manager = MockNodeManager()
        controller = controller_factory(manager)
        await controller.initialize()
        await controller.wait_idle()

        status = controller.get_status()

        assert status.is_connected is True
        assert status.is_reconnecting is False
        assert status.max_reconnect_attempts == 3
        assert status.candidate_stats.total == 3
        assert status.candidate_stats.current.host == "alpha.example"

    async def test_destroy_releases_everything(self, controller_factory):
        manager = MockNodeManager()
        controller = controller_factory(manager)
        await controller.initialize()
        await controller.wait_idle()

        await controller.destroy()

        assert manager.handler_count() == 0
        assert manager.connections() == []
        assert manager.handles[0].keepalive_stopped is True
        assert controller._health_check.running is False
        assert controller._periodic_reset.running is False
        assert controller.pool._directory.closed is True

        controller.attempt_reconnection()
        assert controller._effect_tasks == set()
