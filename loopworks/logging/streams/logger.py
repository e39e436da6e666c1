from __future__ import annotations

import asyncio
import sys
from types import FrameType
from typing import Callable, Dict, TypeVar

from loopworks.logging.models import Entry, Log

from .logger_context import LoggerContext
from .logger_stream import split_path

T = TypeVar("T", bound=Entry)


def _wrap(entry: T, frame: FrameType) -> Log[T]:
    return Log(
        entry=entry,
        filename=frame.f_code.co_filename,
        function_name=frame.f_code.co_name,
        line_number=frame.f_lineno,
    )


class Logger:
    """
    Named logging contexts shared by one component.

    ``context(name)`` is reused across calls with the same name, so a
    component can log from several coroutines into one stream.
    """

    def __init__(self) -> None:
        self._contexts: Dict[str, LoggerContext] = {}

    def get_stream(
        self,
        name: str = "default",
        template: str | None = None,
        path: str | None = None,
    ):
        filename, directory = split_path(path)

        context = LoggerContext(
            name=name,
            template=template,
            filename=filename,
            directory=directory,
        )
        self._contexts[name] = context

        return context.stream

    def context(
        self,
        name: str = "default",
        template: str | None = None,
        path: str | None = None,
        nested: bool = False,
    ):
        filename, directory = split_path(path)

        context = self._contexts.get(name)
        if context is None:
            context = LoggerContext(
                name=name,
                template=template,
                filename=filename,
                directory=directory,
                nested=nested,
            )
            self._contexts[name] = context

        else:
            context.template = template or context.template
            context.filename = filename or context.filename
            context.directory = directory or context.directory
            context.nested = nested

        return context

    async def log(
        self,
        entry: T,
        name: str = "default",
        template: str | None = None,
        path: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        log = _wrap(entry, sys._getframe(1))

        async with self.context(name=name, nested=True) as ctx:
            await ctx.log(
                log,
                template=template,
                path=path,
                filter=filter,
            )

    async def batch(self, *entries: T, name: str = "default"):
        frame = sys._getframe(1)

        async with self.context(name=name, nested=True) as ctx:
            await ctx.batch([_wrap(entry, frame) for entry in entries])

    async def close(self):
        if self._contexts:
            await asyncio.gather(
                *[context.stream.close() for context in self._contexts.values()]
            )
