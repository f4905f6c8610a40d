"""Detection of files that are still being copied into the input directory.

A file is stable when its size footprint is identical across two samples taken
`change_timeout` apart. This is a heuristic: a writer that pauses for the whole
window produces a false positive.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple
from hbwatch.domain.models import CandidateFile

REASON_CHANGED = "size changed"
REASON_VANISHED = "vanished"


@dataclass
class StabilityReport:
    stable: List[CandidateFile] = field(default_factory=list)
    skipped: List[Tuple[CandidateFile, str]] = field(default_factory=list)


class StabilityDetector:
    """Filters candidates down to the ones whose metric did not move.

    Metrics:
        blocks: allocated 512-byte blocks (`st_blocks`), `st_size` where unavailable
        size: byte size
        mtime: modification time in nanoseconds
    """

    def __init__(self, change_timeout_s: float, metric: str = "blocks"):
        if metric not in ("blocks", "size", "mtime"):
            raise ValueError(f"Unknown stability metric: {metric}")
        self.change_timeout_s = change_timeout_s
        self.metric = metric
        self.logger = logging.getLogger(__name__)

    def sample(self, path: Path) -> Optional[int]:
        """Returns the metric for `path`, or None if it cannot be stat'ed."""
        try:
            st = path.stat()
        except OSError:
            return None
        if self.metric == "size":
            return st.st_size
        if self.metric == "mtime":
            return st.st_mtime_ns
        blocks = getattr(st, "st_blocks", None)
        return blocks if blocks is not None else st.st_size

    def filter(self, candidates: List[CandidateFile], wait: Callable[[float], object] = time.sleep) -> StabilityReport:
        report = StabilityReport()
        if not candidates:
            return report

        first: Dict[Path, Optional[int]] = {c.path: self.sample(c.path) for c in candidates}
        wait(self.change_timeout_s)

        seen = set()
        for candidate in candidates:
            if candidate.path in seen:
                continue
            seen.add(candidate.path)

            before = first[candidate.path]
            after = self.sample(candidate.path)
            if before is None or after is None:
                reason = REASON_VANISHED
            elif before != after:
                reason = REASON_CHANGED
            else:
                report.stable.append(candidate.model_copy(update={"signature": after}))
                continue

            self.logger.info(f"Skipping {candidate.basename} ({reason}).")
            report.skipped.append((candidate, reason))

        return report
