from relink.candidates import CandidatePool
from relink.connection import ConnectionSupervisor, NodeManager
from relink.env import Env, load_env
from relink.failover import FailoverController
from relink.logging import Logger, LoggingConfig


def create_controller(
    manager: NodeManager | None = None,
    env: Env | None = None,
    logger: Logger | None = None,
) -> FailoverController:
    """
    Wire a ``FailoverController`` from environment settings.

    Loads ``Env`` from the process environment and ``.env`` when none is
    given, and applies its logging settings to the shared ``LoggingConfig``.
    """
    if env is None:
        env = load_env(Env)

    logging_config = LoggingConfig()
    logging_config.update(
        log_directory=env.RELINK_LOGS_DIRECTORY,
        log_level=env.RELINK_LOG_LEVEL,
        log_output=env.RELINK_LOG_OUTPUT,
    )

    if logger is None:
        logger = Logger()

    pool = CandidatePool(env.get_pool_config(), logger=logger)
    supervisor = ConnectionSupervisor(manager, logger=logger)

    return FailoverController(
        supervisor,
        pool,
        config=env.get_failover_config(),
        logger=logger,
    )
