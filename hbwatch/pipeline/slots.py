class JobSlotPool:
    """Counts in-flight transcodes against the `concurrent` limit.

    Only the dispatcher thread admits and releases, so no lock is taken:
    `0 <= active <= limit` holds by construction.
    """

    def __init__(self, limit: int = 1):
        if limit < 1:
            raise ValueError(f"Slot limit must be at least 1, got {limit}")
        self._limit = limit
        self._active = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def active(self) -> int:
        return self._active

    @property
    def free(self) -> int:
        return self._limit - self._active

    @property
    def idle(self) -> bool:
        return self._active == 0

    def try_admit(self) -> bool:
        if self._active >= self._limit:
            return False
        self._active += 1
        return True

    def release(self):
        if self._active == 0:
            raise RuntimeError("release() called with no active job")
        self._active -= 1
