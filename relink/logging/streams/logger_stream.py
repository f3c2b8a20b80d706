import asyncio
import datetime
import io
import os
import pathlib
import sys
import threading
from collections import defaultdict
from typing import (
    Callable,
    Dict,
    TypeVar,
)

import msgspec

from relink.logging.config import LoggingConfig, StreamType
from relink.logging.models import Entry, Log


T = TypeVar('T', bound=Entry)

DEFAULT_TEMPLATE = "{timestamp} - {level} - {thread_id} - {filename}:{function_name}.{line_number} - {message}"


class LoggerStream:
    def __init__(
        self,
        name: str | None = None,
        template: str | None = None,
        filename: str | None = None,
        directory: str | None = None,
    ) -> None:
        if name is None:
            name = "default"

        self._name = name
        self._default_template = template
        self._default_logfile = filename
        self._default_log_directory = directory

        self._init_lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._encoder = msgspec.json.Encoder()

        self._files: Dict[str, io.FileIO] = {}
        self._file_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._cwd: str | None = None
        self._default_logfile_path: str | None = None

        self._config = LoggingConfig()
        self._initialized: bool = False
        self._closed = False

    @property
    def name(self):
        return self._name

    async def initialize(self):

        async with self._init_lock:

            if self._initialized:
                return

            if self._loop is None:
                self._loop = asyncio.get_running_loop()

            if self._cwd is None:
                self._cwd = await self._loop.run_in_executor(
                    None,
                    os.getcwd,
                )

            logfile = self._default_logfile
            directory = self._default_log_directory

            if logfile is None and self._config.directory:
                logfile = f"{self._name}.json"

            if logfile:
                try:
                    await self.open_file(
                        logfile,
                        directory=directory,
                        is_default=True,
                    )

                except OSError as error:
                    await self._fall_back_to_console(
                        f"logfile {logfile} could not be opened ({error})"
                    )

            self._closed = False
            self._initialized = True

    async def open_file(
        self,
        filename: str,
        directory: str | None = None,
        is_default: bool = False,
    ):
        logfile_path = self._to_logfile_path(filename, directory=directory)

        async with self._file_locks[logfile_path]:
            await self._loop.run_in_executor(
                None,
                self._open_file,
                logfile_path,
            )

        if is_default:
            self._default_logfile_path = logfile_path

    def _open_file(
        self,
        logfile_path: str,
    ):
        resolved_path = pathlib.Path(logfile_path).absolute().resolve()
        resolved_path.parent.mkdir(parents=True, exist_ok=True)

        self._files[logfile_path] = open(str(resolved_path), "ab+")

    async def _fall_back_to_console(self, reason: str):
        self._default_logfile_path = None

        await self._loop.run_in_executor(
            None,
            self._write_to_stream,
            f"{self._name} logger: {reason}, logging to console only",
            self._config.output,
        )

    def _to_logfile_path(
        self,
        filename: str,
        directory: str | None = None,
    ):
        filename_path = pathlib.Path(filename)

        assert (
            filename_path.suffix == ".json"
        ), "Err. - file must be JSON file for logs."

        if self._config.directory:
            directory = self._config.directory

        elif directory is None:
            directory = self._cwd

        return os.path.join(directory, filename_path)

    async def close(self):
        self._closed = True

        await asyncio.gather(*[
            self._close_file(logfile_path) for logfile_path in list(self._files)
        ])

        self._initialized = False

    async def _close_file(self, logfile_path: str):
        async with self._file_locks[logfile_path]:
            await self._loop.run_in_executor(
                None,
                self._close_file_at_path,
                logfile_path,
            )

    def _close_file_at_path(self, logfile_path: str):
        if (
            logfile := self._files.pop(logfile_path, None)
        ) and logfile.closed is False:
            logfile.close()

    async def log(
        self,
        entry: T | Log[T],
        template: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        entry_value = entry.entry if isinstance(entry, Log) else entry

        if self._config.enabled(self._name, entry_value.level) is False:
            return

        if filter and filter(entry_value) is False:
            return

        if self._initialized is False:
            await self.initialize()

        log = entry if isinstance(entry, Log) else self._to_log(entry)

        await self._log(log, template=template)

        if self._default_logfile_path:
            await self._log_to_file(log, self._default_logfile_path)

    def _to_log(self, entry: T) -> Log[T]:
        log_file, line_number, function_name = self._find_caller()

        return Log(
            entry=entry,
            filename=log_file,
            function_name=function_name,
            line_number=line_number,
            thread_id=threading.get_native_id(),
            timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
        )

    async def _log(
        self,
        log: Log[T],
        template: str | None = None,
    ):
        if self._closed:
            return

        if template is None:
            template = self._default_template or DEFAULT_TEMPLATE

        line = log.entry.to_template(
            template,
            context={
                "filename": log.filename,
                "function_name": log.function_name,
                "line_number": log.line_number,
                "thread_id": log.thread_id,
                "timestamp": log.timestamp,
            },
        )

        await self._loop.run_in_executor(
            None,
            self._write_to_stream,
            line,
            self._config.output,
        )

    def _write_to_stream(self, line: str, stream_type: StreamType):
        stream = sys.stdout if stream_type == StreamType.STDOUT else sys.stderr
        stream.write(f"{line}\n")
        stream.flush()

    async def _log_to_file(
        self,
        log: Log[T],
        logfile_path: str,
    ):
        if self._closed:
            return

        try:
            async with self._file_locks[logfile_path]:
                await self._loop.run_in_executor(
                    None,
                    self._write_to_file,
                    log,
                    logfile_path,
                )

        except OSError as error:
            self._files.pop(logfile_path, None)
            await self._fall_back_to_console(
                f"logfile {logfile_path} could not be written ({error})"
            )

    def _write_to_file(
        self,
        log: Log[T],
        logfile_path: str,
    ):
        if (
            logfile := self._files.get(logfile_path)
        ) and logfile.closed is False:
            logfile.write(self._encoder.encode(log) + b"\n")
            logfile.flush()

    def _find_caller(self):
        frame = sys._getframe(3)
        code = frame.f_code

        return (
            code.co_filename,
            frame.f_lineno,
            code.co_name,
        )
