import logging
from pathlib import Path
from typing import List
from concurrent.futures import ThreadPoolExecutor, as_completed

from tqdm import tqdm

from .config import SpoolConfig
from .exceptions import ErrorKind, FileOperationError, PhotoSpoolError
from .models import RunSummary, SpoolResult, SpoolStatus
from .scanning.filesystem import SpoolScanner
from .spooler import Spooler


class PhotoSpoolApp:
    def __init__(self, cfg: SpoolConfig, progress: bool = True):
        self.cfg = cfg
        self.progress = progress

    def run(self) -> RunSummary:
        """
        Executes one spool pass.
        1. Open the session (load the index)
        2. Enumerate the spool directory
        3. Spool candidates on a worker pool, quarantine everything else
        4. Prune emptied directories
        5. Close the session (write the index)

        Per-file failures are collected in the summary. A failed index load
        or a fatal error propagates; the index is written either way once
        the session is open.
        """
        cfg = self.cfg
        logging.info(f"Spooling {cfg.spool_dir} -> {cfg.photo_dir} (DryRun={cfg.dry_run}, Workers={cfg.max_workers})")

        spooler = Spooler.from_config(cfg)
        scanner = SpoolScanner(cfg.error_dir, dry_run=cfg.dry_run)
        summary = RunSummary()

        try:
            try:
                paths = list(scanner.iter_files(cfg.spool_dir, skip_dirs={cfg.error_dir, cfg.photo_dir}))
            except FileOperationError as e:
                logging.error(f"Walk of {cfg.spool_dir} failed: {e}")
                summary.walk_error = e
                paths = []

            candidates = []
            for path in paths:
                if scanner.is_candidate(path):
                    candidates.append(path)
                else:
                    summary.results.append(scanner.route_unsupported(path))

            summary.results.extend(self.spool_all(spooler, candidates))

            if cfg.prune and summary.walk_error is None:
                scanner.prune_empty_dirs(cfg.spool_dir)
        finally:
            try:
                spooler.close()
            except PhotoSpoolError as e:
                logging.error(f"Failed to close the index: {e}")
                summary.close_error = e

        return summary

    def spool_all(self, spooler: Spooler, paths: List[Path]) -> List[SpoolResult]:
        """
        Feeds ``paths`` through ``spooler`` and returns one result per path.
        Waits for every in-flight file before returning.
        """
        if not paths:
            logging.info("No files to spool.")
            return []

        workers = max(1, self.cfg.max_workers)
        if workers == 1:
            return [self._spool_one(spooler, p) for p in tqdm(paths, desc="Spooling", disable=not self.progress)]

        results = []
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_path = {executor.submit(self._spool_one, spooler, p): p for p in paths}
            try:
                for future in tqdm(as_completed(future_to_path), total=len(future_to_path),
                                   desc="Spooling", disable=not self.progress):
                    results.append(future.result())
            except PhotoSpoolError:
                # Files already started run to completion; the rest never start.
                for future in future_to_path:
                    future.cancel()
                raise
        return results

    def _spool_one(self, spooler: Spooler, path: Path) -> SpoolResult:
        try:
            return spooler.spool(path)
        except PhotoSpoolError as e:
            if e.fatal:
                raise
            logging.error(f"Failed to spool {path}: {e}")
            return self._failure(path, e)
        except Exception as e:
            logging.exception(f"Unexpected error while spooling {path}")
            return self._failure(path, FileOperationError("Unexpected error", path, e))

    def _failure(self, path: Path, error: PhotoSpoolError) -> SpoolResult:
        status = SpoolStatus.DUPLICATE if error.kind is ErrorKind.DUPLICATE else SpoolStatus.ERROR
        return SpoolResult(path, status, destination=error.quarantined_to,
                           fingerprint=getattr(error, 'fingerprint', None), error=error)
