"""
Asynchronous task tracking for Cloud Director operations
"""

import logging
import time
from typing import Callable, Optional

from ..exceptions import TaskError, TimeoutError, VCDError, wrap_error
from ..types.xml import TaskType

logger = logging.getLogger(__name__)

DEFAULT_TASK_DELAY = 3


class TaskStatus:
    """Values of the Task status attribute"""
    QUEUED = "queued"
    PRE_RUNNING = "preRunning"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    ABORTED = "aborted"
    CANCELED = "canceled"

    RUNNING_STATES = (QUEUED, PRE_RUNNING, RUNNING)

    @classmethod
    def is_final(cls, status: str) -> bool:
        return status not in cls.RUNNING_STATES


# (task, how_many_times, elapsed_seconds, first, last)
InspectionFunc = Callable[[TaskType, int, float, bool, bool], None]


class Task:
    """Handle to a server side task that can be polled until it finishes"""

    def __init__(self, client, task: Optional[TaskType] = None):
        self.client = client
        self.task = task

    @classmethod
    def from_href(cls, client, href: str) -> "Task":
        return cls(client, TaskType(href=href))

    def refresh(self) -> None:
        """Reload the task from its href"""
        if self.task is None or not self.task.href:
            raise VCDError("cannot refresh, Object is empty")

        self.task = self.client.execute_request(
            self.task.href, "GET", "", "error retrieving task: %s", None, TaskType)

    def _error_message(self) -> str:
        if self.task.error is not None and self.task.error.message:
            return self.task.error.message
        return self.task.description

    def wait_inspect_task_completion(self, inspection_func: Optional[InspectionFunc] = None,
                                     delay: float = DEFAULT_TASK_DELAY,
                                     timeout: Optional[float] = None) -> None:
        """Poll the task until it leaves the queued/running states.

        Args:
            inspection_func: Called after every refresh with the task, the refresh
                count, the elapsed seconds, and whether this is the first and the
                last refresh
            delay: Seconds to sleep between refreshes
            timeout: Seconds after which polling gives up, no limit when None

        Raises:
            TaskError: If the task ends in error
            TimeoutError: If the timeout elapses first
        """
        if self.task is None:
            raise VCDError("cannot refresh, Object is empty")

        how_many_times = 0
        start = time.monotonic()
        while True:
            how_many_times += 1
            elapsed = time.monotonic() - start
            try:
                self.refresh()
            except VCDError as err:
                raise wrap_error(f"error retrieving task: {err}", err) from err

            status = self.task.status
            if TaskStatus.is_final(status):
                if inspection_func is not None:
                    inspection_func(self.task, how_many_times, elapsed, how_many_times == 1,
                                    status in (TaskStatus.ERROR, TaskStatus.SUCCESS))
                if status == TaskStatus.ERROR:
                    raise TaskError(f"task did not complete successfully: {self._error_message()}",
                                    details={"task": self.task})
                logger.debug(f"Task {self.task.href} finished with status {status}")
                return

            if inspection_func is not None:
                inspection_func(self.task, how_many_times, elapsed, how_many_times == 1, False)

            if timeout is not None and time.monotonic() - start + delay > timeout:
                raise TimeoutError(f"task {self.task.href} did not complete within {timeout} seconds "
                                   f"(last status: {status})")
            time.sleep(delay)

    def wait_task_completion(self, timeout: Optional[float] = None) -> None:
        """Wait for the task with the default refresh delay"""
        self.wait_inspect_task_completion(None, DEFAULT_TASK_DELAY, timeout)

    def get_task_progress(self) -> str:
        """Refresh the task and return its progress percentage as a string"""
        if self.task is None:
            raise VCDError("cannot refresh, Object is empty")
        self.refresh()
        if self.task.status == TaskStatus.ERROR:
            raise TaskError(f"task did not complete successfully: {self._error_message()}")
        return str(self.task.progress)

    def cancel_task(self) -> None:
        """Request cancellation of a running task"""
        if self.task is None or not self.task.href:
            raise VCDError("cannot cancel, Object is empty")
        self.client.execute_request_without_response(
            f"{self.task.href}/action/cancel", "POST", "", "error cancelling task: %s")
