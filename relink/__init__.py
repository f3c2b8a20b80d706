from .candidates import (
    Candidate as Candidate,
    CandidatePool as CandidatePool,
    PoolConfig as PoolConfig,
)
from .connection import (
    ConnectionSupervisor as ConnectionSupervisor,
    NodeConfig as NodeConfig,
    NodeConnection as NodeConnection,
    NodeManager as NodeManager,
)
from .env import Env as Env, load_env as load_env
from .failover import (
    FailoverConfig as FailoverConfig,
    FailoverController as FailoverController,
    FailoverStatus as FailoverStatus,
)
from .health import NodeHealthProbe as NodeHealthProbe
from .logging import Logger as Logger, LoggingConfig as LoggingConfig
from .bootstrap import create_controller as create_controller
