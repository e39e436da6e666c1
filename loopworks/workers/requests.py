"""
Requests understood by an execution unit.

Each request is a tagged ``msgspec.Struct``. Requests cross into a unit
as msgpack bytes and are decoded back into the tagged union there, so
a unit only ever handles the variants listed in ``Request``.
"""

from typing import Any, Callable

import cloudpickle
import msgspec


class PingRequest(msgspec.Struct, tag=True):
    pass


class CpuIntensiveRequest(msgspec.Struct, tag=True):
    iterations: int
    jitter: float = 0


class DelayedEchoRequest(msgspec.Struct, tag=True):
    delay: float
    value: Any = None


class CallableRequest(msgspec.Struct, tag=True):
    function: bytes
    arguments: bytes


class ProcessRangeRequest(msgspec.Struct, tag=True):
    buffer_id: str
    start: int
    end: int
    operation: str


class RandomUpdateRequest(msgspec.Struct, tag=True):
    buffer_id: str
    worker_id: int
    update_count: int
    seed: int | None = None
    record_writes: bool = False


Request = (
    PingRequest
    | CpuIntensiveRequest
    | DelayedEchoRequest
    | CallableRequest
    | ProcessRangeRequest
    | RandomUpdateRequest
)


class UnitResponse(msgspec.Struct):
    value: Any
    duration: float


_encoder = msgspec.msgpack.Encoder()
_decoder = msgspec.msgpack.Decoder(Request)


def encode_request(request: Request) -> bytes:
    return _encoder.encode(request)


def decode_request(data: bytes) -> Request:
    return _decoder.decode(data)


def callable_request(function: Callable[..., Any], *args: Any, **kwargs: Any):
    return CallableRequest(
        function=cloudpickle.dumps(function),
        arguments=cloudpickle.dumps((args, kwargs)),
    )
