"""
Utility helpers: HTTP logging, request tracing and parallel execution
"""

from .http_logging import init_logging
from .parallel import ParallelInput, ResultOutcome, run_parallel, run_when_ready
from .request_id import default_request_id

__all__ = [
    'init_logging',
    'ParallelInput',
    'ResultOutcome',
    'run_parallel',
    'run_when_ready',
    'default_request_id',
]
