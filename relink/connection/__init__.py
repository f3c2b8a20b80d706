from .connection_supervisor import ConnectionSupervisor as ConnectionSupervisor
from .errors import (
    ConnectionClosedError as ConnectionClosedError,
    ConnectionFailedError as ConnectionFailedError,
    ConnectionTimeoutError as ConnectionTimeoutError,
    NodeCreationError as NodeCreationError,
)
from .models import (
    ConnectResult as ConnectResult,
    DESTROY_REASON as DESTROY_REASON,
    DisconnectReason as DisconnectReason,
    MAIN_NODE_ID as MAIN_NODE_ID,
    NodeConfig as NodeConfig,
)
from .node_connection import (
    NodeConnection as NodeConnection,
    NodeEventName as NodeEventName,
    NodeManager as NodeManager,
)
from .node_event_subscription import NodeEventSubscription as NodeEventSubscription
