"""
The spooling engine.

A ``Spooler`` is the session object: it owns the fingerprint index for
the lifetime of a run and moves one spool file at a time into the
date-structured archive, routing anything it cannot archive into the
error directory.
"""
import logging
import threading
from pathlib import Path
from datetime import datetime, timedelta
from typing import Dict, Set

from . import config
from .config import SpoolConfig
from .database.store import IndexStore, NoopIndexStore
from .exceptions import (
    ClosedError,
    CollisionError,
    DuplicateError,
    FileOperationError,
    MetadataExtractionError,
    PhotoSpoolError,
    QuarantineError,
    StoreError,
)
from .metadata.extract import MetadataExtractor
from .models import SpoolResult, SpoolStatus
from .organization.mover import FileMover, collision_name, duplicate_name
from .organization.rules import DestinationPlanner, resolve_destination
from .scanning.hasher import FileHasher


class Spooler:
    def __init__(self,
                 db_path: Path,
                 destination: Path,
                 error_dir: Path,
                 dry_run: bool = False,
                 strict_index: bool = True,
                 max_collision_attempts: int = config.MAX_COLLISION_ATTEMPTS):
        """
        Opens a spool session and loads the index.

        Raises:
            StoreError: the index exists but cannot be read or parsed.
        """
        self.destination = destination
        self.error_dir = error_dir
        self.dry_run = dry_run

        self.hasher = FileHasher()
        self.metadata = MetadataExtractor()
        self.planner = DestinationPlanner(destination, max_collision_attempts)
        self.mover = FileMover(dry_run=dry_run)

        if dry_run:
            self.store: IndexStore = NoopIndexStore(db_path)
        else:
            self.store = IndexStore(db_path, strict=strict_index)
        self.store.load()

        # Guards the dedup check, destination choice and index insert.
        self._lock = threading.Lock()
        # Destinations handed out this session but possibly not yet on disk
        self._claimed: Set[Path] = set()
        # Fingerprints spooled (or being spooled) this session
        self._session_hashes: Dict[str, Path] = {}
        self._closed = False

    @classmethod
    def from_config(cls, cfg: SpoolConfig) -> "Spooler":
        return cls(cfg.db_path, cfg.photo_dir, cfg.error_dir,
                   dry_run=cfg.dry_run,
                   strict_index=cfg.strict_index,
                   max_collision_attempts=cfg.max_collision_attempts)

    @property
    def closed(self) -> bool:
        return self._closed

    def spool(self, path: Path) -> SpoolResult:
        """
        Moves ``path`` into the archive and records it in the index.

        Raises:
            FileHashError: the file could not be read; it is left in place.
            MetadataExtractionError: no usable capture time; the file is
                moved to the error directory.
            DuplicateError: the content is already archived; the file is
                moved to ``<error_dir>/<name>.DUPLICATE``.
            CollisionError: no free destination could be taken; the file is
                moved to ``<error_dir>/<stem>::<destination name>``.
            FileOperationError: the move itself failed.
            StoreError: the file was archived but could not be indexed.
            QuarantineError: a file without a capture time could not be moved
                to the error directory. Other routes raise FileOperationError.
            ClosedError: the session has been closed.
        """
        self._check_open()

        fingerprint = self.hasher.compute_hash(path)

        try:
            capture_time = self.metadata.get_capture_time(path)
        except MetadataExtractionError as e:
            logging.warning(f"Could not read the capture time of {path}: {e}")
            e.quarantined_to = self._quarantine(path, self.error_dir / path.name, fatal=True)
            raise

        dest = self._claim(path, fingerprint, capture_time)

        try:
            self.mover.move(path, dest)
        except CollisionError as e:
            self._release(fingerprint, dest)
            # Appeared between the existence check and the move
            logging.error(f"Destination {dest} appeared while spooling {path}")
            e.quarantined_to = self._quarantine(path, collision_name(self.error_dir, path, dest))
            raise
        except PhotoSpoolError:
            self._release(fingerprint, dest)
            raise

        try:
            with self._lock:
                self.store.insert(fingerprint, dest)
        except StoreError as e:
            logging.error(f"{path} was moved to {dest} but could not be indexed: {e}")
            raise StoreError("Archived file is missing from the index", dest, e) from e

        if self.dry_run:
            logging.info(f"[DRY RUN] Would spool {path} -> {dest}")
            return SpoolResult(path, SpoolStatus.DRY_RUN, dest, fingerprint)

        logging.info(f"Spooled {path} -> {dest}")
        return SpoolResult(path, SpoolStatus.SPOOLED, dest, fingerprint)

    def close(self):
        """
        Flushes the index and ends the session. A second call, or any
        spool() after this, raises ClosedError.
        """
        self._check_open()
        try:
            self.store.close()
        finally:
            self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self._closed:
            self.close()

    # --- Internal ---

    def _check_open(self):
        if self._closed:
            raise ClosedError("This spooler is already closed")

    def _claim(self, path: Path, fingerprint: str, capture_time: datetime) -> Path:
        """Dedup check plus destination choice, as one step."""
        with self._lock:
            if self.store.lookup(fingerprint) or fingerprint in self._session_hashes:
                existing = self.store.paths(fingerprint)
                earlier = self._session_hashes.get(fingerprint)
                if earlier is not None and str(earlier) not in existing:
                    existing.append(str(earlier))
                err = DuplicateError(f"An index entry already exists for {path.name}", path,
                                     fingerprint=fingerprint, existing=existing)
                logging.warning(f"{path} is a duplicate of {', '.join(existing)}")
                err.quarantined_to = self._quarantine(path, duplicate_name(self.error_dir, path))
                raise err

            dest = self.planner.plan(capture_time, path.suffix, self._is_taken)
            if dest is None:
                last = resolve_destination(
                    self.destination,
                    capture_time + timedelta(seconds=self.planner.max_attempts - 1),
                    path.suffix,
                )
                err = CollisionError(f"No free destination after {self.planner.max_attempts} attempts",
                                     path, destination=last)
                logging.error(str(err))
                err.quarantined_to = self._quarantine(path, collision_name(self.error_dir, path, last))
                raise err

            self._claimed.add(dest)
            self._session_hashes[fingerprint] = dest
            return dest

    def _release(self, fingerprint: str, dest: Path):
        with self._lock:
            self._claimed.discard(dest)
            self._session_hashes.pop(fingerprint, None)

    def _is_taken(self, candidate: Path) -> bool:
        return candidate in self._claimed or candidate.exists()

    def _quarantine(self, path: Path, target: Path, fatal: bool = False) -> Path:
        """
        Moves ``path`` into the error directory as ``target``, numbering the
        name if it is already taken.

        Raises:
            QuarantineError: the move failed and ``fatal`` is set.
            FileOperationError: the move failed otherwise; the file stays put.
        """
        logging.info(f"Moving {path} to {target}")
        try:
            return self.mover.quarantine(path, target)
        except PhotoSpoolError as e:
            error_cls = QuarantineError if fatal else FileOperationError
            raise error_cls(f"Could not move file to the error directory as {target.name}",
                            path, e) from e
