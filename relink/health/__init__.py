from .models import (
    ProbeResponse as ProbeResponse,
    ProbeResult as ProbeResult,
)
from .node_health_probe import NodeHealthProbe as NodeHealthProbe
