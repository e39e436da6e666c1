import asyncio
import datetime
import io
import os
import pathlib
import sys
import threading
from collections import defaultdict
from typing import Callable, Dict, List, Set, TypeVar

import msgspec

from loopworks.logging.config import LoggingConfig, StreamType
from loopworks.logging.models import Entry, Log

T = TypeVar("T", bound=Entry)

DEFAULT_TEMPLATE = "{timestamp} - {level} - {thread_id} - {filename}:{function_name}.{line_number} - {message}"


def split_path(path: str | None) -> tuple[str | None, str | None]:
    """
    Split a log path into ``(filename, directory)``. A path with a
    suffix names a file; anything else names a directory.
    """
    if path is None:
        return None, None

    logfile_path = pathlib.Path(path)
    if logfile_path.suffix:
        return logfile_path.name, str(logfile_path.parent.absolute())

    return None, str(logfile_path.absolute())


class LoggerProtocol(asyncio.BaseProtocol):
    def __init__(self) -> None:
        self._paused = False
        self._drain_waiters: List[asyncio.Future] = []

    def pause_writing(self):
        self._paused = True

    def resume_writing(self):
        self._paused = False
        for waiter in self._drain_waiters:
            if not waiter.done():
                waiter.set_result(None)

        self._drain_waiters.clear()

    def connection_lost(self, exc: Exception | None):
        self.resume_writing()

    async def _drain_helper(self):
        if not self._paused:
            return

        waiter = asyncio.get_running_loop().create_future()
        self._drain_waiters.append(waiter)
        await waiter

    def _get_close_waiter(self, stream: asyncio.StreamWriter):
        waiter = asyncio.get_running_loop().create_future()
        waiter.set_result(None)
        return waiter


class LoggerStream:
    def __init__(
        self,
        name: str = "default",
        template: str | None = None,
        filename: str | None = None,
        directory: str | None = None,
    ) -> None:
        self._name = name
        self._default_template = template
        self._default_logfile = filename
        self._default_log_directory = directory

        self._init_lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._config = LoggingConfig()
        self._initialized = False

        self._stream_writers: Dict[StreamType, asyncio.StreamWriter] = {}
        self._fallback_streams: Dict[StreamType, io.TextIOBase] = {}
        self._files: Dict[str, io.BufferedRandom] = {}
        self._file_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._cwd: str | None = None
        self._default_logfile_path: str | None = None

        self._scheduled: Set[asyncio.Future] = set()

    def set_defaults(
        self,
        template: str | None = None,
        filename: str | None = None,
        directory: str | None = None,
    ):
        self._default_template = template
        self._default_logfile = filename
        self._default_log_directory = directory

    async def initialize(self):
        async with self._init_lock:
            if self._initialized:
                return

            self._loop = asyncio.get_running_loop()

            if self._cwd is None:
                self._cwd = await self._loop.run_in_executor(None, os.getcwd)

            self._initialized = True

    async def open_file(
        self,
        filename: str,
        directory: str | None = None,
        is_default: bool = False,
    ):
        if self._initialized is False:
            await self.initialize()

        logfile_path = self._to_logfile_path(filename, directory=directory)

        async with self._file_locks[logfile_path]:
            await self._loop.run_in_executor(
                None,
                self._open_file,
                logfile_path,
            )

        if is_default:
            self._default_logfile_path = logfile_path

    def _open_file(self, logfile_path: str):
        if (logfile := self._files.get(logfile_path)) and logfile.closed is False:
            return

        resolved_path = pathlib.Path(logfile_path).absolute().resolve()
        resolved_path.parent.mkdir(parents=True, exist_ok=True)

        self._files[logfile_path] = open(str(resolved_path), "ab+")

    def _to_logfile_path(
        self,
        filename: str,
        directory: str | None = None,
    ):
        filename_path = pathlib.Path(filename)

        assert filename_path.suffix == ".json", "Err. - file must be JSON file for logs."

        if directory is None and self._config.directory:
            directory = self._config.directory

        elif directory is None:
            directory = self._cwd

        return os.path.join(directory, str(filename_path))

    async def _get_stream_writer(self, stream_type: StreamType):
        if stream_writer := self._stream_writers.get(stream_type):
            return stream_writer

        if stream_type in self._fallback_streams:
            return None

        fileno = 1 if stream_type == StreamType.STDOUT else 2
        duplicate = await self._loop.run_in_executor(None, os.dup, fileno)
        output = os.fdopen(duplicate, mode="w")

        try:
            transport, protocol = await self._loop.connect_write_pipe(
                LoggerProtocol,
                output,
            )

        except (ValueError, OSError):
            # Regular files (redirected or captured output) cannot back a pipe transport.
            self._fallback_streams[stream_type] = output
            return None

        self._stream_writers[stream_type] = asyncio.StreamWriter(
            transport,
            protocol,
            None,
            self._loop,
        )

        return self._stream_writers[stream_type]

    def schedule(
        self,
        entry: T,
        template: str | None = None,
        path: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        pending = asyncio.ensure_future(
            self.log(
                entry,
                template=template,
                path=path,
                filter=filter,
            )
        )

        self._scheduled.add(pending)
        pending.add_done_callback(self._scheduled.discard)

    async def batch(
        self,
        entries: list[T],
        template: str | None = None,
        path: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        if len(entries) > 0:
            await asyncio.gather(
                *[
                    self.log(
                        entry,
                        template=template,
                        path=path,
                        filter=filter,
                    )
                    for entry in entries
                ],
                return_exceptions=True,
            )

    async def log(
        self,
        entry: T | Log[T],
        template: str | None = None,
        path: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        if self._initialized is False:
            await self.initialize()

        filename, directory = split_path(path)

        if template is None:
            template = self._default_template

        if filename is None:
            filename = self._default_logfile

        if directory is None:
            directory = self._default_log_directory

        log = entry
        if not isinstance(entry, Log):
            frame = sys._getframe(1)
            code = frame.f_code
            log = Log(
                entry=entry,
                filename=code.co_filename,
                function_name=code.co_name,
                line_number=frame.f_lineno,
            )

        if self._config.enabled(self._name, log.entry.level) is False:
            return

        if filter and filter(log.entry) is False:
            return

        if filename or directory:
            await self._log_to_file(
                log,
                filename=filename or "logs.json",
                directory=directory,
            )

        else:
            await self._log(log, template=template)

    async def _log(
        self,
        log: Log[T],
        template: str | None = None,
    ):
        if template is None:
            template = DEFAULT_TEMPLATE

        line = log.entry.to_template(
            template,
            context={
                "filename": log.filename,
                "function_name": log.function_name,
                "line_number": log.line_number,
                "thread_id": threading.get_native_id(),
                "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            },
        )

        stream_type = self._config.output
        stream_writer = await self._get_stream_writer(stream_type)

        if stream_writer is None:
            await self._loop.run_in_executor(
                None,
                self._write_line,
                self._fallback_streams[stream_type],
                line,
            )

            return

        if stream_writer.is_closing():
            return

        stream_writer.write(line.encode() + b"\n")
        await stream_writer.drain()

    def _write_line(self, output: io.TextIOBase, line: str):
        if output.closed is False:
            output.write(line + "\n")
            output.flush()

    async def _log_to_file(
        self,
        log: Log[T],
        filename: str,
        directory: str | None = None,
    ):
        logfile_path = self._default_logfile_path
        if logfile_path is None or filename != self._default_logfile:
            logfile_path = self._to_logfile_path(filename, directory=directory)

        if self._files.get(logfile_path) is None or self._files[logfile_path].closed:
            await self.open_file(filename, directory=directory)

        async with self._file_locks[logfile_path]:
            await self._loop.run_in_executor(
                None,
                self._write_to_file,
                log,
                logfile_path,
            )

    def _write_to_file(
        self,
        log: Log,
        logfile_path: str,
    ):
        if (logfile := self._files.get(logfile_path)) and logfile.closed is False:
            logfile.write(msgspec.json.encode(log) + b"\n")
            logfile.flush()

    async def close(self):
        while self._scheduled:
            pending = list(self._scheduled)
            await asyncio.gather(*pending, return_exceptions=True)
            self._scheduled.difference_update(pending)

        for logfile_path in list(self._files):
            async with self._file_locks[logfile_path]:
                await self._loop.run_in_executor(
                    None,
                    self._close_file_at_path,
                    logfile_path,
                )

        self._files.clear()

        for stream_writer in self._stream_writers.values():
            if not stream_writer.is_closing():
                await stream_writer.drain()
                stream_writer.close()

        for output in self._fallback_streams.values():
            output.close()

        self._stream_writers.clear()
        self._fallback_streams.clear()
        self._initialized = False

    def _close_file_at_path(self, logfile_path: str):
        if (logfile := self._files.get(logfile_path)) and logfile.closed is False:
            logfile.close()
