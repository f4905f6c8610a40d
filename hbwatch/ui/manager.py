from datetime import datetime
from hbwatch.infrastructure.event_bus import EventBus
from hbwatch.ui.state import SessionState
from hbwatch.domain.models import JobStatus
from hbwatch.domain.events import (
    DiscoveryFinished, DispatchStateChanged, FileSkipped,
    JobStarted, JobCompleted, JobFailed,
    ProcessingFinished, WaitingForInput,
)

class UIManager:
    """Subscribes to EventBus and updates SessionState."""

    def __init__(self, bus: EventBus, state: SessionState):
        self.bus = bus
        self.state = state
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(DispatchStateChanged, self.on_state_changed)
        self.bus.subscribe(DiscoveryFinished, self.on_discovery_finished)
        self.bus.subscribe(FileSkipped, self.on_file_skipped)
        self.bus.subscribe(JobStarted, self.on_job_started)
        self.bus.subscribe(JobCompleted, self.on_job_completed)
        self.bus.subscribe(JobFailed, self.on_job_failed)
        self.bus.subscribe(WaitingForInput, self.on_waiting)
        self.bus.subscribe(ProcessingFinished, self.on_processing_finished)

    def on_state_changed(self, event: DispatchStateChanged):
        with self.state._lock:
            self.state.dispatch_state = event.current
            self.state.state_since = datetime.now()
            self.state.waiting = False

    def on_discovery_finished(self, event: DiscoveryFinished):
        with self.state._lock:
            self.state.polls_count += 1
            self.state.files_found += event.files_found

    def on_file_skipped(self, event: FileSkipped):
        with self.state._lock:
            self.state.skipped_count += 1
            self.state.skip_reasons[event.reason] = self.state.skip_reasons.get(event.reason, 0) + 1

    def on_job_started(self, event: JobStarted):
        with self.state._lock:
            self.state.started_count += 1
            self.state.active_jobs[event.job.source_file.basename] = event.job

    def on_job_completed(self, event: JobCompleted):
        with self.state._lock:
            self.state.active_jobs.pop(event.job.source_file.basename, None)
            self.state.recent_jobs.append(event.job)
            if event.job.status == JobStatus.INTERRUPTED:
                self.state.interrupted_count += 1
            elif event.job.status == JobStatus.FAILED:
                self.state.failed_count += 1
            else:
                self.state.completed_count += 1

    def on_job_failed(self, event: JobFailed):
        with self.state._lock:
            self.state.active_jobs.pop(event.job.source_file.basename, None)
            self.state.recent_jobs.append(event.job)
            self.state.error_count += 1

    def on_waiting(self, event: WaitingForInput):
        with self.state._lock:
            self.state.waiting = True

    def on_processing_finished(self, event: ProcessingFinished):
        with self.state._lock:
            self.state.finished = True
