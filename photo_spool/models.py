from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, List

from .exceptions import PhotoSpoolError


class SpoolStatus(Enum):
    SPOOLED = "spooled"
    DRY_RUN = "dry_run"           # would have been spooled
    DUPLICATE = "duplicate"
    UNSUPPORTED = "unsupported"   # extension filtered before the engine
    ERROR = "error"


@dataclass
class SpoolResult:
    """
    Outcome of feeding one candidate file through the spooler.
    """
    source: Path
    status: SpoolStatus
    destination: Optional[Path] = None
    fingerprint: Optional[str] = None
    error: Optional[PhotoSpoolError] = None

    @property
    def ok(self) -> bool:
        return self.status in (SpoolStatus.SPOOLED, SpoolStatus.DRY_RUN)


@dataclass
class RunSummary:
    results: List[SpoolResult] = field(default_factory=list)
    walk_error: Optional[BaseException] = None
    close_error: Optional[BaseException] = None

    @property
    def counts(self) -> Counter:
        return Counter(r.status for r in self.results)

    @property
    def failures(self) -> List[SpoolResult]:
        return [r for r in self.results if not r.ok]

    @property
    def exit_code(self) -> int:
        # Per-file failures never affect the exit status.
        return 1 if (self.walk_error or self.close_error) else 0
