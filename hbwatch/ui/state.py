import threading
from datetime import datetime
from collections import deque
from typing import Dict, List, Optional
from hbwatch.domain.models import DispatchState, TranscodeJob

class SessionState:
    """Thread-safe session counters fed by UIManager."""

    def __init__(self, recent_max_items: int = 5):
        self._lock = threading.RLock()

        # Counters
        self.polls_count = 0
        self.files_found = 0
        self.skipped_count = 0
        self.started_count = 0
        self.completed_count = 0
        self.failed_count = 0  # encoder exited non-zero
        self.error_count = 0  # job boundary caught an exception
        self.interrupted_count = 0

        # Job lists
        self.active_jobs: Dict[str, TranscodeJob] = {}
        self.recent_jobs = deque(maxlen=recent_max_items)
        self.skip_reasons: Dict[str, int] = {}

        # Global Status
        self.dispatch_state = DispatchState.IDLE_POLL
        self.state_since: datetime = datetime.now()
        self.start_time: datetime = datetime.now()
        self.waiting = False
        self.finished = False

    @property
    def finished_count(self) -> int:
        with self._lock:
            return self.completed_count + self.failed_count + self.error_count + self.interrupted_count

    @property
    def uptime_seconds(self) -> float:
        return (datetime.now() - self.start_time).total_seconds()

    def active_names(self) -> List[str]:
        with self._lock:
            return sorted(self.active_jobs)

    def last_job(self) -> Optional[TranscodeJob]:
        with self._lock:
            return self.recent_jobs[-1] if self.recent_jobs else None
