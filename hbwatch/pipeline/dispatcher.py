"""Watch-and-dispatch loop.

Polls the input root, keeps only files that are no longer being written,
and admits them into a bounded number of concurrent HandBrakeCLI jobs.

Key responsibilities:
- Idle-poll: discover candidates, wait `loop_timeout` when there is nothing to do
- Stabilizing: drop files whose size footprint moved during `change_timeout`
- Draining: pop queued files (last discovered first) into free slots until the
  queue is empty and every slot is free, then poll again
- Shutdown: terminate in-flight encoders and release their slots

The queue, the slot pool and event publication belong to the thread calling
`run()`. Job supervisor threads only hand finished jobs back through an inbox
queue, which is the "slot freed" signal consumed by the admission step.
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from hbwatch.config.models import WatcherConfig
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
from hbwatch.infrastructure.event_bus import EventBus
from hbwatch.infrastructure.file_scanner import FileScanner
from hbwatch.pipeline.runner import TranscodeJobRunner
from hbwatch.pipeline.slots import JobSlotPool
from hbwatch.pipeline.stability import StabilityDetector


@dataclass
class CycleReport:
    """Outcome of one Idle-Poll → Stabilizing → Draining pass."""

    found: int = 0
    stable: int = 0
    skipped: int = 0
    admitted: int = 0
    errors: int = 0
    jobs: List[TranscodeJob] = field(default_factory=list)


class Dispatcher:
    """Single-owner scheduler context: queue, slot pool and loop state.

    Args:
        config: Frozen WatcherConfig.
        event_bus: EventBus receiving state, discovery and job events.
        file_scanner: FileScanner for the input root.
        detector: StabilityDetector applied to each poll's candidates.
        runner: TranscodeJobRunner that supervises one encoder per job.
        slots: Optional JobSlotPool (defaults to `config.concurrent` slots).
    """

    def __init__(
        self,
        config: WatcherConfig,
        event_bus: EventBus,
        file_scanner: FileScanner,
        detector: StabilityDetector,
        runner: TranscodeJobRunner,
        slots: Optional[JobSlotPool] = None,
    ):
        self.config = config
        self.event_bus = event_bus
        self.file_scanner = file_scanner
        self.detector = detector
        self.runner = runner
        self.slots = slots or JobSlotPool(config.concurrent)
        self.logger = logging.getLogger(__name__)

        self.state = DispatchState.IDLE_POLL
        self._queue: List[CandidateFile] = []
        self._active: Dict[Path, Tuple[TranscodeJob, threading.Thread]] = {}
        self._inbox: "queue.Queue[TranscodeJob]" = queue.Queue()
        self._stop_event = threading.Event()  # stop polling and admitting
        self._shutdown_event = threading.Event()  # terminate running encoders
        self._interrupted: List[Path] = []
        self._finished = False

    @property
    def queued(self) -> List[CandidateFile]:
        return list(self._queue)

    @property
    def active_jobs(self) -> List[TranscodeJob]:
        return [job for job, _ in self._active.values()]

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def stop(self):
        """Requests a stop. Safe to call from signal handlers and other threads."""
        self._stop_event.set()

    def _sleep(self, seconds: float) -> bool:
        """Waits unless a stop is requested. Returns True if interrupted by stop()."""
        return self._stop_event.wait(seconds)

    def _set_state(self, state: DispatchState):
        if state == self.state:
            return
        previous, self.state = self.state, state
        self.logger.info(f"State: {previous.value} -> {state.value}")
        self.event_bus.publish(DispatchStateChanged(previous=previous, current=state))

    def poll(self) -> List[CandidateFile]:
        """Lists candidate files under the input root in discovery order."""
        return list(self.file_scanner.scan(self.config.input_path))

    def run_cycle(self) -> CycleReport:
        """Runs one pass from Idle-Poll back to Idle-Poll."""
        report = CycleReport()
        self._set_state(DispatchState.IDLE_POLL)

        candidates = self.poll()
        report.found = len(candidates)
        if not candidates:
            self.event_bus.publish(DiscoveryFinished(files_found=0))
            return report

        self._set_state(DispatchState.STABILIZING)
        self.logger.debug(f"Checking {len(candidates)} file(s) for changes in {self.config.change_timeout_s:g}s")
        stability = self.detector.filter(candidates, wait=self._sleep)
        for candidate, reason in stability.skipped:
            self.event_bus.publish(FileSkipped(path=candidate.path, reason=reason))
        report.stable = len(stability.stable)
        report.skipped = len(stability.skipped)
        self.event_bus.publish(DiscoveryFinished(
            files_found=report.found,
            files_to_process=report.stable,
            skipped=report.skipped,
        ))

        if self.stop_requested:
            self._set_state(DispatchState.IDLE_POLL)
            return report

        self._queue = list(stability.stable)
        self._set_state(DispatchState.DRAINING)
        self._admit_available(report)

        while not self.slots.idle:
            if self.stop_requested and not self._shutdown_event.is_set():
                self._begin_shutdown()
            try:
                job = self._inbox.get(timeout=0.2)
            except queue.Empty:
                continue
            self._on_job_finished(job, report)
            if not self.stop_requested:
                self._admit_available(report)

        if self._queue:
            self.logger.info(f"Stop requested, {len(self._queue)} queued file(s) left for next run")
            self._queue.clear()
        self._set_state(DispatchState.IDLE_POLL)
        return report

    def run(self):
        """Repeats cycles until stop() is called. Always shuts down running jobs on exit."""
        self.logger.info("Service ready...")
        try:
            while not self.stop_requested:
                report = self.run_cycle()
                if self.stop_requested:
                    break
                if report.admitted and not report.errors:
                    continue  # queue drained, poll again right away
                if report.found == 0:
                    self.logger.info("No change, Waiting...")
                elif report.errors:
                    self.logger.info(f"{report.errors} job(s) failed, waiting before next poll...")
                else:
                    self.logger.info("No stable file, Waiting...")
                self.event_bus.publish(WaitingForInput(timeout_s=self.config.loop_timeout_s))
                self._sleep(self.config.loop_timeout_s)
        finally:
            self.shutdown()

    def _admit_available(self, report: CycleReport):
        while self._queue and self.slots.try_admit():
            candidate = self._queue.pop()
            try:
                job = self.runner.prepare(candidate)
                self.logger.info(f"Encoding: {candidate.basename} ...")
                thread = self.runner.start(job, self._inbox.put, self._shutdown_event)
            except Exception:
                self.slots.release()
                raise
            self._active[candidate.path] = (job, thread)
            report.admitted += 1
            report.jobs.append(job)
            self.event_bus.publish(JobStarted(job=job))

    def _on_job_finished(self, job: TranscodeJob, report: Optional[CycleReport] = None):
        self._active.pop(job.source_file.path, None)
        self.slots.release()
        name = job.source_file.basename

        if job.status == JobStatus.ERROR:
            if report is not None:
                report.errors += 1
            self.logger.error(f"{name} Failed. ({job.error_message})")
            self.event_bus.publish(JobFailed(job=job, error_message=job.error_message or "unknown error"))
            return

        if job.status == JobStatus.INTERRUPTED:
            self._interrupted.append(job.source_file.path)
            self.logger.info(f"{name} Interrupted. (code: {job.exit_code})")
        elif job.status == JobStatus.FAILED:
            self.logger.warning(f"{name} Done. (code: {job.exit_code})")
        else:
            self.logger.info(f"{name} Done. (code: {job.exit_code})")
        self.event_bus.publish(JobCompleted(job=job))

    def _begin_shutdown(self):
        if self._active:
            self.logger.info(f"Terminating {len(self._active)} running job(s)...")
        self._shutdown_event.set()

    def shutdown(self):
        """Stops the loop, terminates running encoders and waits for their supervisors."""
        if self._finished:
            return
        self._finished = True
        self.stop()
        self._begin_shutdown()

        for job, thread in list(self._active.values()):
            thread.join(timeout=self.config.terminate_timeout + 1.0)
            if thread.is_alive():
                self.logger.warning(f"Job for {job.source_file.basename} did not stop in time")

        while True:
            try:
                job = self._inbox.get_nowait()
            except queue.Empty:
                break
            self._on_job_finished(job)

        self._queue.clear()
        self.event_bus.publish(ProcessingFinished(interrupted=list(self._interrupted)))
