"""Tests for score_cli.scheduler — debouncing and generation checks."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from score_cli.errors import DecodeFailed
from score_cli.scheduler import PreviewScheduler
from score_cli.settings import ProcessingSettings

S1 = ProcessingSettings(smoothness=1)
S2 = ProcessingSettings(smoothness=2)
S3 = ProcessingSettings(smoothness=3)


@pytest.fixture
def compute() -> MagicMock:
    return MagicMock(side_effect=lambda source, settings: ("result", settings))


@pytest.fixture
def on_result() -> MagicMock:
    return MagicMock()


@pytest.fixture
def on_error() -> MagicMock:
    return MagicMock()


@pytest.fixture
def scheduler(compute, on_result, on_error, executor, timer_factory) -> PreviewScheduler:
    return PreviewScheduler(
        compute=compute,
        on_result=on_result,
        on_error=on_error,
        delay=0.3,
        executor=executor,
        timer_factory=timer_factory,
    )


# ── Debouncing ─────────────────────────────────────────────────────────────


class TestDebounce:
    def test_nothing_runs_before_the_quiet_period(self, scheduler, compute, timers):
        scheduler.request("img", "src", S1)
        assert timers[0].started
        assert timers[0].interval == 0.3
        compute.assert_not_called()

    def test_runs_once_timer_fires(self, scheduler, compute, on_result, timers):
        scheduler.request("img", "src", S1)
        timers[0].fire()
        compute.assert_called_once_with("src", S1)
        job, result = on_result.call_args.args
        assert job.generation == 1
        assert job.settings == S1
        assert result == ("result", S1)

    def test_new_request_resets_the_timer(self, scheduler, timers):
        scheduler.request("img", "src", S1)
        scheduler.request("img", "src", S2)
        assert timers[0].cancelled
        assert not timers[1].cancelled

    def test_burst_of_changes_computes_only_the_last(self, scheduler, compute, on_result, timers):
        for s in (S1, S2, S3):
            scheduler.request("img", "src", s)
        # Even a timer that fires despite being cancelled must not start work.
        for timer in timers:
            timer.function(*timer.args)
        compute.assert_called_once_with("src", S3)
        assert on_result.call_count == 1

    def test_keys_are_debounced_independently(self, scheduler, compute, timers):
        scheduler.request("a", "src-a", S1)
        scheduler.request("b", "src-b", S2)
        assert not timers[0].cancelled
        timers[0].fire()
        timers[1].fire()
        assert compute.call_count == 2


# ── Generations ────────────────────────────────────────────────────────────


class TestGenerations:
    def test_generation_increases_per_request(self, scheduler):
        assert scheduler.latest_generation("img") == 0
        assert scheduler.request("img", "src", S1) == 1
        assert scheduler.request("img", "src", S2) == 2
        assert scheduler.latest_generation("img") == 2

    def test_result_superseded_mid_run_is_discarded(
        self, executor, timer_factory, on_result, timers
    ):
        scheduler = None

        def slow_compute(source, settings):
            if settings is S1:
                # Settings change while the first job is running.
                scheduler.request("img", source, S2)
            return settings

        scheduler = PreviewScheduler(
            compute=slow_compute, on_result=on_result,
            executor=executor, timer_factory=timer_factory,
        )
        scheduler.submit_now("img", "src", S1)
        on_result.assert_not_called()

        timers[-1].fire()
        job, result = on_result.call_args.args
        assert result is S2
        assert job.generation == 2

    def test_submit_now_supersedes_pending_timer(self, scheduler, compute, timers):
        scheduler.request("img", "src", S1)
        scheduler.submit_now("img", "src", S2)
        assert timers[0].cancelled
        compute.assert_called_once_with("src", S2)

    def test_cancel_drops_pending_work(self, scheduler, compute, timers):
        scheduler.request("img", "src", S1)
        scheduler.cancel("img")
        timers[0].function(*timers[0].args)
        compute.assert_not_called()


# ── Failure isolation ──────────────────────────────────────────────────────


class TestFailures:
    def test_error_reported_for_failing_key_only(self, executor, timer_factory, on_result, on_error):
        def compute(source, settings):
            if source == "bad":
                raise DecodeFailed("nope")
            return "ok"

        scheduler = PreviewScheduler(
            compute=compute, on_result=on_result, on_error=on_error,
            executor=executor, timer_factory=timer_factory,
        )
        bad = scheduler.submit_now("bad", "bad", S1)
        good = scheduler.submit_now("good", "good", S1)

        assert isinstance(bad.exception(), DecodeFailed)
        assert good.result() == "ok"
        (job, error), _ = on_error.call_args
        assert job.key == "bad"
        assert isinstance(error, DecodeFailed)
        assert on_result.call_args.args[0].key == "good"

    def test_unexpected_errors_are_not_swallowed(self, executor, timer_factory, on_error):
        scheduler = PreviewScheduler(
            compute=MagicMock(side_effect=KeyError("bug")), on_error=on_error,
            executor=executor, timer_factory=timer_factory,
        )
        future = scheduler.submit_now("img", "src", S1)
        assert isinstance(future.exception(), KeyError)
        on_error.assert_not_called()

    def test_unexpected_error_on_debounced_path_is_logged(
        self, executor, timer_factory, timers, on_error, caplog
    ):
        scheduler = PreviewScheduler(
            compute=MagicMock(side_effect=KeyError("bug")), on_error=on_error,
            executor=executor, timer_factory=timer_factory,
        )
        with caplog.at_level(logging.ERROR, logger="score_cli.scheduler"):
            scheduler.request("img", "src", S1)
            timers[0].fire()

        [record] = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert "'img' generation 1" in record.getMessage()
        assert isinstance(record.exc_info[1], KeyError)
        on_error.assert_not_called()

    def test_processing_errors_are_not_logged_as_unexpected(
        self, executor, timer_factory, timers, caplog
    ):
        scheduler = PreviewScheduler(
            compute=MagicMock(side_effect=DecodeFailed("nope")),
            executor=executor, timer_factory=timer_factory,
        )
        with caplog.at_level(logging.ERROR, logger="score_cli.scheduler"):
            scheduler.request("img", "src", S1)
            timers[0].fire()
        assert not [r for r in caplog.records if r.levelno == logging.ERROR]


# ── Real threads ───────────────────────────────────────────────────────────


class TestWithThreads:
    def test_debounced_request_applies_latest_settings(self):
        applied = []
        done = threading.Event()

        def on_result(job, result):
            applied.append(result)
            done.set()

        with ThreadPoolExecutor(max_workers=2) as pool:
            scheduler = PreviewScheduler(
                compute=lambda source, settings: settings,
                on_result=on_result,
                delay=0.05,
                executor=pool,
            )
            for s in (S1, S2, S3):
                scheduler.request("img", "src", s)
            assert done.wait(timeout=5)
            scheduler.join(timeout=5)
            scheduler.shutdown()

        assert applied == [S3]

    def test_owned_executor_shuts_down(self):
        scheduler = PreviewScheduler(compute=lambda source, settings: settings, workers=1)
        future = scheduler.submit_now("img", "src", S1)
        assert future.result(timeout=5) is S1
        scheduler.shutdown()
