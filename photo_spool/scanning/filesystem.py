import os
import logging
from pathlib import Path
from typing import Iterator, Set, Optional

from .. import config
from ..exceptions import FileOperationError, PhotoSpoolError
from ..models import SpoolResult, SpoolStatus
from ..organization.mover import FileMover


class SpoolScanner:
    """
    Finds candidate files in the spool directory and tidies up after a run.
    """

    def __init__(self, error_dir: Path, dry_run: bool = False):
        self.error_dir = error_dir
        self.dry_run = dry_run
        self.mover = FileMover(dry_run=dry_run)

    def is_candidate(self, path: Path) -> bool:
        return path.suffix.lower() in config.IMAGE_EXTS

    def iter_files(self, root: Path, skip_dirs: Optional[Set[Path]] = None) -> Iterator[Path]:
        """
        Depth-first walker using os.scandir for speed. Directories in
        ``skip_dirs`` (relative or absolute) and everything below them are
        left out.

        Raises:
            FileOperationError: the root itself cannot be listed.
        """
        skipped = {Path(sd).resolve() for sd in (skip_dirs or ())}
        stack = [root]
        while stack:
            current = stack.pop()
            if skipped and self._is_skipped(current, skipped):
                continue

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as e:
                if current == root:
                    raise FileOperationError("Could not list spool directory", root, e) from e
                logging.warning(f"Cannot list {current}: {e}")
                continue

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            files = []
            for e in entries:
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file(follow_symlinks=False):
                    files.append(Path(e.path))

            # Push dirs to stack (reversed so we process A before Z)
            for d in reversed(dirs):
                stack.append(d)

            for f in files:
                yield f

    def _is_skipped(self, directory: Path, skipped: Set[Path]) -> bool:
        real = directory.resolve()
        return any(sd == real or sd in real.parents for sd in skipped)

    def route_unsupported(self, path: Path) -> SpoolResult:
        """Moves a non-image file into the error directory untouched."""
        logging.info(f"Found unhandled file type {path}. Moving it to {self.error_dir}.")
        try:
            dest = self.mover.quarantine(path, self.error_dir / path.name)
        except PhotoSpoolError as e:
            logging.error(f"Could not move {path} to {self.error_dir}: {e}")
            return SpoolResult(path, SpoolStatus.ERROR, error=e)
        return SpoolResult(path, SpoolStatus.UNSUPPORTED, destination=dest)

    def prune_empty_dirs(self, root: Path) -> int:
        """
        Removes empty directories below ``root`` (never ``root`` itself),
        deepest first so emptied parents go too. Returns how many went.
        """
        removed = 0
        for dirpath, _, _ in os.walk(root, topdown=False):
            d = Path(dirpath)
            if d == root:
                continue
            try:
                if any(d.iterdir()):
                    continue
            except OSError as e:
                logging.warning(f"Cannot inspect {d}: {e}")
                continue

            logging.info(f"Pruning empty directory {d}")
            if self.dry_run:
                logging.info("[DRY RUN] Skipping delete directory.")
                continue
            try:
                d.rmdir()
                removed += 1
            except OSError as e:
                logging.warning(f"Could not remove {d}: {e}")
        return removed
