from .models import Entry, LogLevel


class NodeDebug(Entry, kw_only=True):
    node_key: str | None = None
    reconnect_attempts: int = 0
    nodes_tried: int = 0
    classification: str | None = None
    level: LogLevel = LogLevel.DEBUG

class NodeInfo(Entry, kw_only=True):
    node_key: str | None = None
    reconnect_attempts: int = 0
    nodes_tried: int = 0
    classification: str | None = None
    level: LogLevel = LogLevel.INFO

class NodeWarning(Entry, kw_only=True):
    node_key: str | None = None
    reconnect_attempts: int = 0
    nodes_tried: int = 0
    classification: str | None = None
    level: LogLevel = LogLevel.WARN

class NodeError(Entry, kw_only=True):
    node_key: str | None = None
    reconnect_attempts: int = 0
    nodes_tried: int = 0
    classification: str | None = None
    level: LogLevel = LogLevel.ERROR

class NodeCritical(Entry, kw_only=True):
    node_key: str | None = None
    reconnect_attempts: int = 0
    nodes_tried: int = 0
    classification: str | None = None
    level: LogLevel = LogLevel.CRITICAL

class DirectoryInfo(Entry, kw_only=True):
    source: str
    node_count: int = 0
    level: LogLevel = LogLevel.INFO

class DirectoryWarning(Entry, kw_only=True):
    source: str
    node_count: int = 0
    level: LogLevel = LogLevel.WARN

class DirectoryError(Entry, kw_only=True):
    source: str
    node_count: int = 0
    level: LogLevel = LogLevel.ERROR
