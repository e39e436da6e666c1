from .demos import run_blocking_demo as run_blocking_demo
from .modes import (
    BlockingDemoParams as BlockingDemoParams,
    BlockingDemoResult as BlockingDemoResult,
    BlockingMode as BlockingMode,
    StoppedBy as StoppedBy,
)
