import os
from pathlib import Path
from typing import Iterable, List, Generator, Optional
from hbwatch.domain.models import CandidateFile

class FileScanner:
    """Recursively scans the input root for files with watched extensions."""

    def __init__(self, extensions: List[str], excluded_dirs: Optional[Iterable[Path]] = None):
        self.extensions = [(ext if ext.startswith(".") else f".{ext}").lower() for ext in extensions]
        self.excluded_dirs = {self._key(Path(d)) for d in (excluded_dirs or []) if d}

    @staticmethod
    def _key(path: Path) -> str:
        return os.path.normcase(os.path.abspath(str(path)))

    def scan(self, root_dir: Path) -> Generator[CandidateFile, None, None]:
        """Scans the directory and yields CandidateFile objects in sorted walk order."""
        for root, dirs, files in os.walk(str(root_dir)):
            root_path = Path(root)

            # Never descend into output/archive/log directories nested under the input root
            dirs[:] = sorted(d for d in dirs if self._key(root_path / d) not in self.excluded_dirs)
            files.sort()

            for file_name in files:
                file_path = root_path / file_name
                if file_path.suffix.lower() not in self.extensions:
                    continue
                if not file_path.is_file():
                    continue
                yield CandidateFile(path=file_path)
