from .buffer import (
    BufferDType as BufferDType,
    SharedBuffer as SharedBuffer,
    SharedBufferHandle as SharedBufferHandle,
    attach_buffers as attach_buffers,
    get_buffer as get_buffer,
)
from .models import (
    ProcessReport as ProcessReport,
    RangeReport as RangeReport,
    UpdateReport as UpdateReport,
    UpdateSummary as UpdateSummary,
)
from .operations import Operation as Operation
from .partition import partition_range as partition_range
