"""Domain events for the watch-and-dispatch loop.

Events are published on the dispatcher thread through the EventBus, decoupling
the dispatch loop from session statistics and any other observer.

See `infrastructure/event_bus.py` for the pub/sub mechanism.
"""

from pathlib import Path
from typing import List
from pydantic import BaseModel, Field
from .models import DispatchState, TranscodeJob


class Event(BaseModel):
    """Base class for all domain events.

    Events are validated Pydantic models. They are not frozen by default.
    """

    pass


class DispatchStateChanged(Event):
    """Emitted on every dispatch loop state transition."""

    previous: DispatchState
    current: DispatchState


class DiscoveryFinished(Event):
    """Emitted after a poll and stability check.

    `files_found` counts candidates, `files_to_process` the stable ones queued.
    """

    files_found: int
    files_to_process: int = 0
    skipped: int = 0


class FileSkipped(Event):
    """Emitted when a candidate is dropped for this cycle (still being written)."""

    path: Path
    reason: str


class JobEvent(Event):
    """Base class for events related to a specific transcode job."""

    job: TranscodeJob


class JobStarted(JobEvent):
    """Emitted when a job is admitted into a slot."""

    pass


class JobCompleted(JobEvent):
    """Emitted when the encoder exited and cleanup ran, whatever the exit code."""

    pass


class JobFailed(JobEvent):
    """Emitted when the job boundary caught an exception (status ERROR)."""

    error_message: str


class WaitingForInput(Event):
    """Emitted when the loop goes idle for `loop_timeout` before re-polling."""

    timeout_s: float


class ProcessingFinished(Event):
    """Emitted once when the dispatcher stops."""

    interrupted: List[Path] = Field(default_factory=list)
