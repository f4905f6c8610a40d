from pathlib import Path
from rich.console import Console

from hbwatch.infrastructure.event_bus import EventBus
from hbwatch.ui.state import SessionState
from hbwatch.ui.manager import UIManager
from hbwatch.ui.summary import build_summary_table, format_duration
from hbwatch.domain.events import (
    DiscoveryFinished,
    DispatchStateChanged,
    FileSkipped,
    JobCompleted,
    JobFailed,
    JobStarted,
    ProcessingFinished,
    WaitingForInput,
)
from hbwatch.domain.models import CandidateFile, DispatchState, JobStatus, TranscodeJob


def _job(name="a.mkv", status=JobStatus.PROCESSING, exit_code=None):
    return TranscodeJob(
        source_file=CandidateFile(path=Path("in") / name),
        output_path=Path("out") / name,
        status=status,
        exit_code=exit_code,
    )


def test_ui_manager_tracks_job_lifecycle():
    bus = EventBus()
    state = SessionState()
    UIManager(bus, state)

    job = _job()
    bus.publish(JobStarted(job=job))
    assert state.active_names() == ["a.mkv"]
    assert state.started_count == 1

    job.status = JobStatus.COMPLETED
    job.exit_code = 0
    bus.publish(JobCompleted(job=job))
    assert state.active_names() == []
    assert state.completed_count == 1
    assert state.last_job() is job


def test_ui_manager_counts_outcomes_by_status():
    bus = EventBus()
    state = SessionState()
    UIManager(bus, state)

    bus.publish(JobCompleted(job=_job("a.mkv", JobStatus.FAILED, 3)))
    bus.publish(JobCompleted(job=_job("b.mkv", JobStatus.INTERRUPTED, -15)))
    bus.publish(JobFailed(job=_job("c.mkv", JobStatus.ERROR), error_message="boom"))

    assert state.failed_count == 1
    assert state.interrupted_count == 1
    assert state.error_count == 1
    assert state.completed_count == 0
    assert state.finished_count == 3


def test_ui_manager_discovery_and_skips():
    bus = EventBus()
    state = SessionState()
    UIManager(bus, state)

    bus.publish(DiscoveryFinished(files_found=3, files_to_process=2, skipped=1))
    bus.publish(FileSkipped(path=Path("in/b.mp4"), reason="size changed"))
    bus.publish(DiscoveryFinished(files_found=0))

    assert state.polls_count == 2
    assert state.files_found == 3
    assert state.skipped_count == 1
    assert state.skip_reasons == {"size changed": 1}


def test_ui_manager_state_and_waiting():
    bus = EventBus()
    state = SessionState()
    UIManager(bus, state)

    bus.publish(WaitingForInput(timeout_s=900.0))
    assert state.waiting is True

    bus.publish(DispatchStateChanged(previous=DispatchState.IDLE_POLL, current=DispatchState.STABILIZING))
    assert state.dispatch_state == DispatchState.STABILIZING
    assert state.waiting is False

    bus.publish(ProcessingFinished())
    assert state.finished is True


def test_summary_table_renders_counters():
    bus = EventBus()
    state = SessionState()
    UIManager(bus, state)
    bus.publish(JobCompleted(job=_job("movie.mkv", JobStatus.COMPLETED, 0)))

    console = Console(record=True, width=120)
    console.print(build_summary_table(state))
    text = console.export_text()

    assert "hbwatch session" in text
    assert "Completed" in text
    assert "movie.mkv" in text
    assert "COMPLETED (0)" in text


def test_format_duration():
    assert format_duration(5) == "5s"
    assert format_duration(65) == "1m 05s"
    assert format_duration(3725) == "1h 02m 05s"
