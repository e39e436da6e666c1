"""
A fixed-length numeric array visible to every execution unit.

No unit owns a ``SharedBuffer``. Units that were each handed a disjoint
``[start, end)`` range may read and write their range directly through
``view()`` without locking. Any access where ranges may overlap must go
through the atomic operations (``load``, ``store``, ``add``, ``exchange``,
``compare_exchange``), which serialize on a striped set of locks keyed
by element index.

Buffers are allocated from the ``spawn`` multiprocessing context so
they can be handed to spawned units through the executor initializer,
where ``attach()`` rebuilds them and registers them by ``buffer_id``.
"""

from __future__ import annotations

import multiprocessing
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Literal

import numpy as np

from loopworks.env import Env
from loopworks.errors import ConfigurationError

BufferDType = Literal["int32", "int64", "float64"]

TYPECODES: Dict[str, str] = {
    "int32": "i",
    "int64": "q",
    "float64": "d",
}


_buffers: Dict[str, SharedBuffer] = {}


def get_buffer(buffer_id: str) -> SharedBuffer:
    buffer = _buffers.get(buffer_id)
    if buffer is None:
        raise KeyError(f"Err. - No shared buffer registered with id - {buffer_id}")

    return buffer


def attach_buffers(handles: Iterable[SharedBufferHandle]):
    for handle in handles:
        if handle.buffer_id not in _buffers:
            SharedBuffer.attach(handle)


@dataclass(slots=True)
class SharedBufferHandle:
    buffer_id: str
    dtype: BufferDType
    length: int
    raw: Any
    locks: List[Any]


class SharedBuffer:
    def __init__(
        self,
        length: int,
        dtype: BufferDType = "float64",
        lock_stripes: int | None = None,
        env: Env | None = None,
    ) -> None:
        if length < 1:
            raise ConfigurationError(
                f"Err. - Shared buffer length must be at least one - got {length}"
            )

        typecode = TYPECODES.get(dtype)
        if typecode is None:
            raise ConfigurationError(
                f"Err. - Unsupported shared buffer dtype - {dtype}"
            )

        if lock_stripes is None:
            if env is None:
                env = Env()

            lock_stripes = env.LOOPWORKS_SHARED_LOCK_STRIPES

        if lock_stripes < 1:
            raise ConfigurationError(
                f"Err. - Shared buffer lock stripes must be at least one - got {lock_stripes}"
            )

        context = multiprocessing.get_context("spawn")

        self._setup(
            SharedBufferHandle(
                buffer_id=uuid.uuid4().hex,
                dtype=dtype,
                length=length,
                raw=context.RawArray(typecode, length),
                locks=[context.Lock() for _ in range(lock_stripes)],
            )
        )

    @classmethod
    def from_values(
        cls,
        values: Iterable[int | float],
        dtype: BufferDType = "float64",
        lock_stripes: int | None = None,
        env: Env | None = None,
    ):
        values = np.asarray(list(values), dtype=np.dtype(dtype))

        buffer = cls(
            len(values),
            dtype=dtype,
            lock_stripes=lock_stripes,
            env=env,
        )

        buffer.array[:] = values

        return buffer

    @classmethod
    def attach(cls, handle: SharedBufferHandle):
        buffer = cls.__new__(cls)
        buffer._setup(handle)

        return buffer

    def _setup(self, handle: SharedBufferHandle):
        self.buffer_id = handle.buffer_id
        self.dtype = handle.dtype
        self.length = handle.length

        self._handle = handle
        self._locks = handle.locks
        self.array = np.frombuffer(handle.raw, dtype=np.dtype(handle.dtype))
        self.closed = False

        _buffers.setdefault(self.buffer_id, self)

    @property
    def handle(self):
        return self._handle

    def __len__(self):
        return self.length

    def view(self, start: int = 0, end: int | None = None) -> np.ndarray:
        return self.array[start:end]

    def to_list(self) -> list[int | float]:
        return self.array.tolist()

    def _lock_for(self, index: int):
        if index < 0 or index >= self.length:
            raise IndexError(
                f"Err. - Index {index} out of range for shared buffer of length {self.length}"
            )

        return self._locks[index % len(self._locks)]

    def load(self, index: int) -> int | float:
        with self._lock_for(index):
            return self.array[index].item()

    def store(self, index: int, value: int | float) -> int | float:
        with self._lock_for(index):
            self.array[index] = value
            return self.array[index].item()

    def add(self, index: int, value: int | float) -> int | float:
        with self._lock_for(index):
            previous = self.array[index].item()
            self.array[index] = previous + value

            return previous

    def exchange(self, index: int, value: int | float) -> int | float:
        with self._lock_for(index):
            previous = self.array[index].item()
            self.array[index] = value

            return previous

    def compare_exchange(
        self,
        index: int,
        expected: int | float,
        value: int | float,
    ) -> int | float:
        with self._lock_for(index):
            previous = self.array[index].item()
            if previous == expected:
                self.array[index] = value

            return previous

    def close(self):
        if self.closed:
            return

        self.closed = True

        if _buffers.get(self.buffer_id) is self:
            del _buffers[self.buffer_id]
