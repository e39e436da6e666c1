from .api import (
    cleanup_pool as cleanup_pool,
    concurrent_update as concurrent_update,
    configure_logging as configure_logging,
    initialize_pool as initialize_pool,
    parallel_process as parallel_process,
    release_buffer as release_buffer,
    run_blocking_demo as run_blocking_demo,
    schedule as schedule,
    start_lag_monitor as start_lag_monitor,
)
from .env import Env as Env, load_env as load_env
from .errors import (
    ConfigurationError as ConfigurationError,
    LoopworksError as LoopworksError,
    MonitorAlreadyRunningError as MonitorAlreadyRunningError,
    PoolInitializationError as PoolInitializationError,
    PoolStateError as PoolStateError,
    TaskExecutionError as TaskExecutionError,
    UnitTerminatedError as UnitTerminatedError,
    UnknownRequestError as UnknownRequestError,
)
from .monitoring.blocking import (
    BlockingDemoParams as BlockingDemoParams,
    BlockingDemoResult as BlockingDemoResult,
    BlockingMode as BlockingMode,
)
from .monitoring.lag import (
    LagMonitor as LagMonitor,
    LagTick as LagTick,
    MonitorStopped as MonitorStopped,
    StopReason as StopReason,
    render_lag_bar as render_lag_bar,
)
from .shared import (
    Operation as Operation,
    ProcessReport as ProcessReport,
    SharedBuffer as SharedBuffer,
    UpdateSummary as UpdateSummary,
    partition_range as partition_range,
)
from .workers import (
    Task as Task,
    TaskResult as TaskResult,
    WorkerPool as WorkerPool,
)
