import threading
from pathlib import Path
from typing import Dict, Optional


class ProgressBoard:
    """Progress file shared by all running jobs.

    Each job owns one entry keyed by its output path. Every update rewrites the
    whole file; the file is deleted when the last entry is removed. With a
    single running job the content is `File: <output>` followed by the latest
    encoder progress fragment.
    """

    def __init__(self, path: Optional[Path]):
        self.path = path
        self._entries: Dict[Path, str] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.path is not None

    def update(self, output_path: Path, fragment: str):
        if self.path is None:
            return
        with self._lock:
            self._entries[output_path] = fragment.replace("\r", "")
            self._write()

    def remove(self, output_path: Path):
        if self.path is None:
            return
        with self._lock:
            self._entries.pop(output_path, None)
            if self._entries:
                self._write()
            elif self.path.exists():
                self.path.unlink()

    def entries(self) -> Dict[Path, str]:
        with self._lock:
            return dict(self._entries)

    def _write(self):
        blocks = [f"File: {output}\n{text}" for output, text in self._entries.items()]
        self.path.write_text("\n".join(blocks))
