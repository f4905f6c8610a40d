import codecs
import subprocess
import logging
import time
import threading
import queue
from typing import Callable, List, Optional, Tuple
from hbwatch.domain.models import TranscodeJob, JobStatus

STDOUT = "stdout"
STDERR = "stderr"

class HandBrakeAdapter:
    """Wrapper around HandBrakeCLI for one transcode.

    stdout carries progress text, stderr carries the encoder log. Both pipes are
    drained by reader threads into a single queue so neither can block the child.
    """

    def __init__(self, handbrake_cli: str, transcoding: List[str], terminate_timeout: float = 5.0, chunk_size: int = 4096):
        self.handbrake_cli = handbrake_cli
        self.transcoding = list(transcoding)
        self.terminate_timeout = terminate_timeout
        self.chunk_size = chunk_size
        self.logger = logging.getLogger(__name__)

    def build_command(self, job: TranscodeJob) -> List[str]:
        """Constructs the HandBrakeCLI command line arguments."""
        return [
            self.handbrake_cli,
            "--input", str(job.source_file.path),
            "--output", str(job.output_path),
            *self.transcoding,
        ]

    def _reader(self, stream, channel: str, output_queue: "queue.Queue[Tuple[str, Optional[str]]]"):
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            for chunk in iter(lambda: stream.read1(self.chunk_size), b""):
                text = decoder.decode(chunk)
                if text:
                    output_queue.put((channel, text))
            tail = decoder.decode(b"", final=True)
            if tail:
                output_queue.put((channel, tail))
        finally:
            output_queue.put((channel, None))

    def _terminate(self, process: subprocess.Popen):
        process.terminate()
        try:
            process.wait(timeout=self.terminate_timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()

    def encode(
        self,
        job: TranscodeJob,
        on_progress: Optional[Callable[[str], None]] = None,
        on_log: Optional[Callable[[str], None]] = None,
        shutdown_event: Optional[threading.Event] = None,
    ) -> int:
        """Runs the encoder to completion and returns its exit code.

        Fragments are forwarded as they arrive. If `shutdown_event` is set while
        encoding, the child is terminated and the job is marked INTERRUPTED.
        """
        filename = job.source_file.basename
        cmd = self.build_command(job)
        self.logger.debug(f"HANDBRAKE_CMD: {' '.join(cmd)}")
        start_time = time.monotonic()

        # Own session: a terminal Ctrl+C reaches the service only, never the encoder
        process = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            start_new_session=True,
        )

        output_queue: "queue.Queue[Tuple[str, Optional[str]]]" = queue.Queue()
        readers = [
            threading.Thread(target=self._reader, args=(process.stdout, STDOUT, output_queue), daemon=True),
            threading.Thread(target=self._reader, args=(process.stderr, STDERR, output_queue), daemon=True),
        ]
        for reader in readers:
            reader.start()

        open_streams = len(readers)
        interrupted = False
        try:
            while open_streams:
                if shutdown_event is not None and shutdown_event.is_set() and not interrupted:
                    self.logger.info(f"HANDBRAKE_INTERRUPTED: {filename} (shutdown signal)")
                    interrupted = True
                    self._terminate(process)

                try:
                    channel, text = output_queue.get(timeout=0.1)
                except queue.Empty:
                    # A killed encoder's own children may keep the pipes open
                    if interrupted and process.poll() is not None:
                        break
                    continue

                if text is None:
                    open_streams -= 1
                elif channel == STDOUT:
                    if on_progress:
                        on_progress(text)
                elif on_log:
                    on_log(text)

            process.wait()
        finally:
            if process.poll() is None:
                self._terminate(process)
            for reader, stream in zip(readers, (process.stdout, process.stderr)):
                reader.join(timeout=1.0)
                if stream and not reader.is_alive():
                    stream.close()

        # Killed by a signal from outside while the service was stopping
        if not interrupted and process.returncode < 0 and shutdown_event is not None and shutdown_event.is_set():
            interrupted = True

        if interrupted:
            job.status = JobStatus.INTERRUPTED
            job.error_message = "Interrupted by shutdown"

        elapsed = time.monotonic() - start_time
        self.logger.debug(f"HANDBRAKE_END: {filename} code={process.returncode} elapsed={elapsed:.2f}s")
        return process.returncode
