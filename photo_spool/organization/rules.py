from pathlib import Path
from datetime import datetime, timedelta
from typing import Callable, Iterator, Optional

from .. import config


def normalize_extension(ext: str) -> str:
    """Lower-cases ``ext`` (with or without the dot) and maps .jpeg to .jpg."""
    ext = ext.lower()
    if ext and not ext.startswith('.'):
        ext = '.' + ext
    return config.EXT_ALIASES.get(ext, ext)


def resolve_destination(base_dir: Path, capture_time: datetime, original_ext: str) -> Path:
    """
    Builds the archive path for a capture time.

    ``2023-07-04 10:15:30`` with ``.JPG`` under ``/archive`` becomes
    ``/archive/2023/07/2023-07-04_101530.jpg``. Pure: never touches disk.
    """
    folder = base_dir / config.FOLDER_PATTERN.format(year=capture_time.year, month=capture_time.month)
    name = capture_time.strftime(config.NAME_PATTERN) + normalize_extension(original_ext)
    return folder / name


def candidate_destinations(base_dir: Path, capture_time: datetime, original_ext: str,
                           max_attempts: int = config.MAX_COLLISION_ATTEMPTS) -> Iterator[Path]:
    """Yields the destination, then the one a second later, and so on."""
    for step in range(max_attempts):
        yield resolve_destination(base_dir, capture_time + timedelta(seconds=step), original_ext)


class DestinationPlanner:
    def __init__(self, base_dir: Path, max_attempts: int = config.MAX_COLLISION_ATTEMPTS):
        self.base_dir = base_dir
        self.max_attempts = max_attempts

    def plan(self, capture_time: datetime, original_ext: str,
             is_taken: Callable[[Path], bool]) -> Optional[Path]:
        """
        First destination, stepping one second at a time, for which
        ``is_taken`` is false. Returns None once ``max_attempts`` are used up.
        """
        for candidate in candidate_destinations(self.base_dir, capture_time, original_ext, self.max_attempts):
            if not is_taken(candidate):
                return candidate
        return None
