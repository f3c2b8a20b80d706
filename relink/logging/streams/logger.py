from __future__ import annotations

import asyncio
import datetime
import pathlib
import sys
import threading
from typing import (
    Callable,
    Dict,
    TypeVar,
)

from relink.logging.models import Entry, Log

from .logger_context import LoggerContext

T = TypeVar('T', bound=Entry)


class Logger:
    def __init__(self) -> None:
        self._contexts: Dict[str, LoggerContext] = {}

    def configure(
        self,
        name: str | None = None,
        template: str | None = None,
        path: str | None = None,
    ):
        if name is None:
            name = 'default'

        filename, directory = self._parse_path(path)

        self._contexts[name] = LoggerContext(
            name=name,
            template=template,
            filename=filename,
            directory=directory,
        )

    def context(
        self,
        name: str | None = None,
        template: str | None = None,
        path: str | None = None,
        nested: bool = False,
    ):
        if name is None:
            name = 'default'

        filename, directory = self._parse_path(path)

        if self._contexts.get(name) is None:

            self._contexts[name] = LoggerContext(
                name=name,
                template=template,
                filename=filename,
                directory=directory,
                nested=nested,
            )

        else:
            self._contexts[name].nested = nested

        return self._contexts[name]

    def _parse_path(self, path: str | None):
        filename: str | None = None
        directory: str | None = None

        if path:
            logfile_path = pathlib.Path(path)
            is_logfile = len(logfile_path.suffix) > 0

            filename = logfile_path.name if is_logfile else None
            directory = str(logfile_path.parent.absolute()) if is_logfile else str(logfile_path.absolute())

        return filename, directory

    async def log(
        self,
        entry: T,
        name: str | None = None,
        template: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        if name is None:
            name = 'default'

        frame = sys._getframe(1)
        code = frame.f_code

        async with self.context(
            name=name,
            nested=True,
        ) as ctx:
            await ctx.log(
                Log(
                    entry=entry,
                    filename=code.co_filename,
                    function_name=code.co_name,
                    line_number=frame.f_lineno,
                    thread_id=threading.get_native_id(),
                    timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat()
                ),
                template=template,
                filter=filter,
            )

    async def close(self):
        if len(self._contexts) > 0:
            await asyncio.gather(*[
                context.stream.close() for context in self._contexts.values()
            ])
