from .lag_bar import lag_severity as lag_severity, render_lag_bar as render_lag_bar
from .models import (
    LagSample as LagSample,
    LagTick as LagTick,
    MonitorStopped as MonitorStopped,
    StopReason as StopReason,
)
from .monitor import LagMonitor as LagMonitor
from .session import MonitorSession as MonitorSession
