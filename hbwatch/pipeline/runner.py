import logging
import os
import shutil
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, IO, Optional
from hbwatch.config.models import WatcherConfig
from hbwatch.domain.models import CandidateFile, JobStatus, TranscodeJob
from hbwatch.infrastructure.handbrake import HandBrakeAdapter
from hbwatch.infrastructure.progress import ProgressBoard


class TranscodeJobRunner:
    """Runs one HandBrakeCLI transcode per queued file and cleans up after it.

    Every job runs inside a failure boundary: `run()` never raises, an
    exception ends the job with status ERROR and is reported upstream like any
    other completion.

    Args:
        config: Frozen service configuration (paths, encoder settings).
        adapter: HandBrakeAdapter that spawns and drains the encoder.
        progress: ProgressBoard behind `progress_output` (disabled when unset).
    """

    def __init__(self, config: WatcherConfig, adapter: HandBrakeAdapter, progress: Optional[ProgressBoard] = None):
        self.config = config
        self.adapter = adapter
        self.progress = progress or ProgressBoard(config.progress_output)
        self.logger = logging.getLogger(__name__)

    def prepare(self, candidate: CandidateFile) -> TranscodeJob:
        """Derives output and per-job log paths for a queued file."""
        log_path = None
        if self.config.handbrake_log:
            log_path = self.config.handbrake_log / f"{candidate.basename}.log"
        return TranscodeJob(
            source_file=candidate,
            output_path=self.config.output_path / candidate.basename,
            log_path=log_path,
        )

    def start(
        self,
        job: TranscodeJob,
        on_finished: Callable[[TranscodeJob], None],
        shutdown_event: Optional[threading.Event] = None,
    ) -> threading.Thread:
        """Supervises the job on its own thread and hands it to `on_finished` when done."""
        thread = threading.Thread(
            target=lambda: on_finished(self.run(job, shutdown_event)),
            name=f"job-{job.source_file.basename}",
            daemon=True,
        )
        thread.start()
        return thread

    def run(self, job: TranscodeJob, shutdown_event: Optional[threading.Event] = None) -> TranscodeJob:
        job.status = JobStatus.PROCESSING
        job.started_at = datetime.now()
        log_handle: Optional[IO[str]] = None
        try:
            if job.log_path:
                log_handle = open(job.log_path, "w")

            def write_log(text: str):
                if log_handle:
                    log_handle.write(text.replace("\r\n", "\n").replace("\r", "\n"))

            code = self.adapter.encode(
                job,
                on_progress=lambda text: self.progress.update(job.output_path, text),
                on_log=write_log,
                shutdown_event=shutdown_event,
            )
            job.exit_code = code
            if job.status != JobStatus.INTERRUPTED:
                job.status = JobStatus.COMPLETED if code == 0 else JobStatus.FAILED

            if log_handle:
                log_handle.write(f"Finished with error code: {code}")
                log_handle.close()
                log_handle = None

            self.progress.remove(job.output_path)

            if job.status == JobStatus.INTERRUPTED:
                self.logger.info(f"{job.source_file.basename} interrupted, source kept.")
            else:
                self._dispose_source(job.source_file.path)
        except Exception as e:
            job.status = JobStatus.ERROR
            job.error_message = f"{type(e).__name__}: {e}"
            self.logger.exception(f"Job for {job.source_file.basename} failed")
            self._abandon(job, log_handle)
        finally:
            job.finished_at = datetime.now()
        return job

    def _abandon(self, job: TranscodeJob, log_handle: Optional[IO[str]]):
        """Best-effort release of the job's log and progress entry after a fault."""
        if log_handle:
            try:
                log_handle.write(f"Job aborted: {job.error_message}")
                log_handle.close()
            except OSError as e:
                self.logger.warning(f"Cannot close job log {job.log_path}: {e}")
        try:
            self.progress.remove(job.output_path)
        except OSError as e:
            self.logger.warning(f"Cannot remove progress file {self.progress.path}: {e}")

    def _dispose_source(self, source: Path):
        """Archives or deletes the source, then drops its now-empty subdirectory."""
        if self.config.move_path:
            destination = self.config.move_path / source.name
            shutil.move(str(source), str(destination))
            self.logger.info(f"Moved {source.name} to {self.config.move_path}")
        else:
            source.unlink()
            self.logger.debug(f"Deleted {source}")

        directory = source.parent
        input_root = self.config.input_path
        if _same_path(directory, input_root) or not _is_within(directory, input_root):
            return
        if directory.exists() and not any(directory.iterdir()):
            directory.rmdir()
            self.logger.info(f"Removed directory {directory}")


def _same_path(a: Path, b: Path) -> bool:
    return os.path.normcase(os.path.abspath(a)) == os.path.normcase(os.path.abspath(b))


def _is_within(path: Path, root: Path) -> bool:
    try:
        Path(os.path.abspath(path)).relative_to(os.path.abspath(root))
    except ValueError:
        return False
    return True
