from .comparisons import (
    PoolComparison as PoolComparison,
    SplitComparison as SplitComparison,
    UnitComparison as UnitComparison,
    compare_pool as compare_pool,
    compare_single_unit as compare_single_unit,
    run_split as run_split,
)
from .dispatch import dispatch_many as dispatch_many, dispatch_single as dispatch_single
from .models import (
    PoolStats as PoolStats,
    PoolStatus as PoolStatus,
    Task as Task,
    TaskResult as TaskResult,
    WorkerStatus as WorkerStatus,
)
from .pool import WorkerPool as WorkerPool
from .pool_worker import PoolWorker as PoolWorker
from .requests import (
    CallableRequest as CallableRequest,
    CpuIntensiveRequest as CpuIntensiveRequest,
    DelayedEchoRequest as DelayedEchoRequest,
    PingRequest as PingRequest,
    ProcessRangeRequest as ProcessRangeRequest,
    RandomUpdateRequest as RandomUpdateRequest,
    Request as Request,
    UnitResponse as UnitResponse,
    callable_request as callable_request,
)
from .unit import ExecutionUnit as ExecutionUnit
