from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional
from pydantic import BaseModel

class JobStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"  # encoder exited non-zero, source still cleaned up
    ERROR = "ERROR"  # exception inside the job boundary
    INTERRUPTED = "INTERRUPTED"  # shutdown while encoding, source kept

class DispatchState(str, Enum):
    IDLE_POLL = "IDLE_POLL"
    STABILIZING = "STABILIZING"
    DRAINING = "DRAINING"

class CandidateFile(BaseModel):
    path: Path
    signature: Optional[int] = None

    @property
    def directory(self) -> Path:
        return self.path.parent

    @property
    def basename(self) -> str:
        return self.path.name

class TranscodeJob(BaseModel):
    source_file: CandidateFile
    output_path: Path
    log_path: Optional[Path] = None
    status: JobStatus = JobStatus.PENDING
    exit_code: Optional[int] = None
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()
