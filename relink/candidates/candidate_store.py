"""
On-disk persistence for the last working node and the directory cache.
"""

import os
import pathlib
import time

import msgspec
import orjson

from .models import Candidate, DirectoryCache


class CandidateStore:
    """
    Reads and writes the two JSON files backing the candidate pool.

    All methods are blocking and never raise on I/O or decode errors: a
    missing or corrupt file reads as empty, and failed writes are reported
    through the return value so callers can log them.
    """

    def __init__(
        self,
        data_directory: str,
        node_filename: str = "node.json",
        nodes_filename: str = "nodes.json",
    ) -> None:
        self._data_directory = pathlib.Path(data_directory)
        self._node_path = self._data_directory / node_filename
        self._nodes_path = self._data_directory / nodes_filename

    @property
    def node_path(self) -> pathlib.Path:
        return self._node_path

    @property
    def nodes_path(self) -> pathlib.Path:
        return self._nodes_path

    def load_node(self) -> Candidate | None:
        data = self._read(self._node_path)
        if data is None:
            return None

        try:
            return msgspec.convert(data, type=Candidate)

        except msgspec.ValidationError:
            return None

    def save_node(self, candidate: Candidate) -> bool:
        return self._write(
            self._node_path,
            msgspec.to_builtins(candidate),
        )

    def load_nodes(self, max_age_seconds: float) -> list[Candidate]:
        data = self._read(self._nodes_path)
        if data is None:
            return []

        try:
            cache = msgspec.convert(data, type=DirectoryCache)

        except msgspec.ValidationError:
            return []

        age_ms = time.time() * 1000 - cache.timestamp
        if age_ms >= max_age_seconds * 1000:
            return []

        return list(cache.nodes)

    def save_nodes(self, candidates: list[Candidate]) -> bool:
        cache = DirectoryCache(
            timestamp=int(time.time() * 1000),
            nodes=list(candidates),
        )

        return self._write(
            self._nodes_path,
            msgspec.to_builtins(cache),
        )

    def _read(self, path: pathlib.Path):
        try:
            return orjson.loads(path.read_bytes())

        except (OSError, orjson.JSONDecodeError):
            return None

    def _write(self, path: pathlib.Path, data) -> bool:
        temporary_path = path.with_suffix(f"{path.suffix}.tmp")

        try:
            self._data_directory.mkdir(parents=True, exist_ok=True)
            temporary_path.write_bytes(
                orjson.dumps(data, option=orjson.OPT_INDENT_2)
            )
            os.replace(temporary_path, path)

        except OSError:
            return False

        return True
