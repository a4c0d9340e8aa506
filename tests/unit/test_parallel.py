"""
Unit tests for the parallel run helpers
"""

import threading

import pytest
from unittest.mock import Mock

from vcdlib.util.parallel import ParallelInput, ResultOutcome, forget_job, run_parallel, run_when_ready


@pytest.fixture
def job_id(request):
    """Unique job id, forgotten after the test"""
    global_id = f"job-{request.node.name}"
    yield global_id
    forget_job(global_id)


class TestRunWhenReady:
    """Test cases for collect-then-run jobs"""

    def make_input(self, job_id, item_id, run, how_many=2, **kwargs):
        return ParallelInput(global_id=job_id, item_id=item_id, how_many=how_many, run=run,
                             item=f"value-{item_id}", client="client", **kwargs)

    def test_runs_once_after_collection(self, job_id):
        """Test that the job runs once every item has arrived"""
        run = Mock(return_value="combined")

        assert run_when_ready(self.make_input(job_id, "a", run)).outcome == ResultOutcome.WAITING
        assert run_when_ready(self.make_input(job_id, "a", run)).outcome == ResultOutcome.WAITING
        assert run_when_ready(self.make_input(job_id, "b", run)).outcome == ResultOutcome.WAITING

        result = run_when_ready(self.make_input(job_id, "a", run))
        again = run_when_ready(self.make_input(job_id, "b", run))

        assert result.outcome == ResultOutcome.DONE
        assert result.result == "combined"
        assert again.outcome == ResultOutcome.DONE
        run.assert_called_once_with("client", job_id, {"a": "value-a", "b": "value-b"})

    def test_failure_is_stored(self, job_id):
        """Test that a failing run reports FAIL to every requester"""
        run = Mock(side_effect=RuntimeError("boom"))
        run_when_ready(self.make_input(job_id, "a", run, how_many=1))

        first = run_when_ready(self.make_input(job_id, "a", run, how_many=1))
        second = run_when_ready(self.make_input(job_id, "a", run, how_many=1))

        assert first.outcome == ResultOutcome.FAIL
        assert str(first.error) == "boom"
        assert second.error is first.error
        assert run.call_count == 1

    def test_collection_timeout(self, job_id, monkeypatch):
        """Test that slow collection times out"""
        ticks = [100.0, 100.0, 200.0]
        monkeypatch.setattr("vcdlib.util.parallel.time.monotonic",
                            lambda: ticks.pop(0) if len(ticks) > 1 else ticks[0])
        run = Mock()

        first = run_when_ready(self.make_input(job_id, "a", run, collection_timeout=10))
        second = run_when_ready(self.make_input(job_id, "b", run, collection_timeout=10))

        assert first.outcome == ResultOutcome.WAITING
        assert second.outcome == ResultOutcome.COLLECTION_TIMEOUT
        run.assert_not_called()

    def test_forget_job(self, job_id):
        """Test that a forgotten id starts over"""
        run = Mock(return_value=1)
        run_when_ready(self.make_input(job_id, "a", run, how_many=1))
        run_when_ready(self.make_input(job_id, "a", run, how_many=1))

        forget_job(job_id)

        assert run_when_ready(self.make_input(job_id, "a", run, how_many=1)).outcome == ResultOutcome.WAITING

    def test_forget_waits_for_running_job(self, job_id):
        """Test that forgetting a job blocks until its run has finished"""
        started = threading.Event()
        release = threading.Event()
        calls = []

        def run(client, global_id, items):
            calls.append(global_id)
            started.set()
            release.wait(5)
            return "done"

        results = []

        def requester():
            run_when_ready(self.make_input(job_id, "a", run, how_many=1))
            results.append(run_when_ready(self.make_input(job_id, "a", run, how_many=1)))

        runner = threading.Thread(target=requester)
        runner.start()
        assert started.wait(5)

        forgetter = threading.Thread(target=forget_job, args=(job_id,))
        forgetter.start()
        forgetter.join(0.2)
        assert forgetter.is_alive()

        release.set()
        runner.join(5)
        forgetter.join(5)

        assert not forgetter.is_alive()
        assert results[0].outcome == ResultOutcome.DONE
        assert calls == [job_id]
        assert run_when_ready(self.make_input(job_id, "a", run, how_many=1)).outcome == ResultOutcome.WAITING


class TestRunParallel:
    """Test cases for the thread pool helper"""

    def test_keeps_order(self):
        """Test that results follow the input order"""
        assert run_parallel(lambda x: x * 2, [3, 1, 2], max_workers=3) == [6, 2, 4]

    def test_uses_threads(self):
        """Test that calls can run at the same time"""
        barrier = threading.Barrier(2, timeout=5)

        def wait(item):
            barrier.wait()
            return item

        assert run_parallel(wait, ["a", "b"], max_workers=2) == ["a", "b"]

    def test_first_error_raised(self):
        """Test that the first failing item's error is raised"""
        def check(item):
            if item < 0:
                raise ValueError(f"negative {item}")
            return item

        with pytest.raises(ValueError) as exc_info:
            run_parallel(check, [1, -1, -2])

        assert str(exc_info.value) == "negative -1"

    def test_empty(self):
        """Test that no items gives no results"""
        assert run_parallel(str, []) == []

    def test_bad_worker_count(self):
        """Test that at least one worker is needed"""
        with pytest.raises(ValueError):
            run_parallel(str, [1], max_workers=0)
