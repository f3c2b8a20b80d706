from .probe_response import ProbeResponse as ProbeResponse
from .probe_result import ProbeResult as ProbeResult
