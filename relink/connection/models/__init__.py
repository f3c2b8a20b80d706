from .connect_result import ConnectResult as ConnectResult
from .disconnect_reason import (
    DESTROY_REASON as DESTROY_REASON,
    DisconnectReason as DisconnectReason,
)
from .node_config import (
    MAIN_NODE_ID as MAIN_NODE_ID,
    NodeConfig as NodeConfig,
)
