import logging
from pathlib import Path
from typing import Optional

class HousekeepingService:
    """Cleans up artifacts left behind by an abrupt shutdown."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def cleanup_stale_progress(self, progress_output: Optional[Path]) -> bool:
        """Removes a progress file no running job owns. Returns True if one was removed."""
        if not progress_output or not progress_output.exists():
            return False
        try:
            progress_output.unlink()
        except OSError as e:
            self.logger.warning(f"Cannot remove stale progress file {progress_output}: {e}")
            return False
        self.logger.info(f"Removed stale progress file {progress_output}")
        return True

    def ensure_directories(self, *directories: Optional[Path]):
        """Creates output/archive/log directories that do not exist yet."""
        for directory in directories:
            if directory is None or directory.exists():
                continue
            directory.mkdir(parents=True, exist_ok=True)
            self.logger.info(f"Created directory {directory}")
