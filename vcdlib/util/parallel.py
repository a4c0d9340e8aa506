"""
Helpers for running independent API calls concurrently
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class ResultOutcome:
    """What a run_when_ready call found or did"""
    DONE = "done"
    WAITING = "waiting"
    RUNNING = "running"
    RUN_TIMEOUT = "run-timeout"
    COLLECTION_TIMEOUT = "collection-timeout"
    FAIL = "fail"


# (client, global_id, items by item_id) -> result
RunAfterCollection = Callable[[Any, str, Dict[str, Any]], Any]


@dataclass
class ParallelInput:
    """One requester's share of a job.

    Every requester of a job passes the same global_id, how_many and run;
    item_id and item identify its own part.
    """
    global_id: str
    item_id: str
    how_many: int
    run: RunAfterCollection
    item: Any = None
    client: Any = None
    collection_timeout: float = 0  # seconds, 0 waits forever
    run_timeout: float = 0


@dataclass
class ParallelResult:
    outcome: str
    result: Any = None
    error: Optional[BaseException] = None


@dataclass
class _JobState:
    data: Dict[str, Any] = field(default_factory=dict)
    is_running: bool = False
    finished: bool = False
    result: Any = None
    error: Optional[BaseException] = None
    run_start: float = 0.0
    collection_start: float = 0.0


_jobs: Dict[str, _JobState] = {}
_job_locks: Dict[str, threading.Lock] = {}
_registry_lock = threading.Lock()


def _lock_for(global_id: str) -> threading.Lock:
    with _registry_lock:
        return _job_locks.setdefault(global_id, threading.Lock())


def _acquire_job_lock(global_id: str) -> threading.Lock:
    # a lock dropped by forget_job while we waited on it no longer guards the id
    while True:
        lock = _lock_for(global_id)
        lock.acquire()
        with _registry_lock:
            if _job_locks.get(global_id) is lock:
                return lock
        lock.release()


def run_when_ready(parallel_input: ParallelInput) -> ParallelResult:
    """Collect items for a job and run it once all of them have arrived.

    Each requester calls this repeatedly. Calls return WAITING until
    how_many distinct items are collected. The call that completes the
    collection runs the function while holding the job lock; later calls
    get the stored outcome.
    """
    lock = _acquire_job_lock(parallel_input.global_id)
    try:
        return _collect_or_run(parallel_input)
    finally:
        lock.release()


def _collect_or_run(parallel_input: ParallelInput) -> ParallelResult:
    job_id, item_id = parallel_input.global_id, parallel_input.item_id
    state = _jobs.setdefault(job_id, _JobState())

    if len(state.data) == parallel_input.how_many:
        if state.finished:
            outcome = ResultOutcome.FAIL if state.error is not None else ResultOutcome.DONE
            logger.debug(f"run_when_ready {job_id} - {item_id}: {outcome}")
            return ParallelResult(outcome, state.result, state.error)
        if state.is_running:
            elapsed = time.monotonic() - state.run_start
            if parallel_input.run_timeout > 0 and elapsed > parallel_input.run_timeout:
                return ParallelResult(ResultOutcome.RUN_TIMEOUT)
            return ParallelResult(ResultOutcome.RUNNING)

        state.is_running = True
        state.run_start = time.monotonic()
        logger.debug(f"run_when_ready {job_id}: running with {len(state.data)} items")
        try:
            state.result = parallel_input.run(parallel_input.client, job_id, dict(state.data))
        except Exception as err:
            logger.error(f"run_when_ready {job_id} failed: {err}")
            state.error = err
        state.finished = True
        if state.error is not None:
            return ParallelResult(ResultOutcome.FAIL, None, state.error)
        return ParallelResult(ResultOutcome.DONE, state.result)

    if not state.data:
        state.collection_start = time.monotonic()
    elapsed = time.monotonic() - state.collection_start
    if parallel_input.collection_timeout > 0 and elapsed > parallel_input.collection_timeout:
        return ParallelResult(ResultOutcome.COLLECTION_TIMEOUT)

    if item_id not in state.data:
        state.data[item_id] = parallel_input.item
        logger.debug(f"run_when_ready {job_id}: added item {item_id} ({len(state.data)})")
    return ParallelResult(ResultOutcome.WAITING)


def forget_job(global_id: str) -> None:
    """Drop the stored state of a job so that its id can be reused.

    Waits for a run in progress to finish first.
    """
    lock = _acquire_job_lock(global_id)
    try:
        with _registry_lock:
            _jobs.pop(global_id, None)
            _job_locks.pop(global_id, None)
    finally:
        lock.release()


def run_parallel(func: Callable[[Any], Any], items: Iterable[Any], max_workers: int = 4) -> List[Any]:
    """Call func on every item from a pool of threads.

    Results are returned in the order of items. When calls fail, the
    exception of the first failing item is raised after all calls end.
    """
    items = list(items)
    if not items:
        return []
    if max_workers < 1:
        raise ValueError(f"max_workers must be at least 1, got {max_workers}")

    with ThreadPoolExecutor(max_workers=min(max_workers, len(items))) as executor:
        futures = [executor.submit(func, item) for item in items]

    results = []
    for future in futures:
        error = future.exception()
        if error is not None:
            raise error
        results.append(future.result())
    return results
