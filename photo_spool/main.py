import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import SpoolConfig
from .core import PhotoSpoolApp
from .exceptions import PhotoSpoolError
from .reporting import ReportGenerator


def setup_logging(log_file: Optional[Path], verbose: bool):
    """Sets up logging to the console and, optionally, a file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Photo Spool: move new pictures into a dated archive")

    p.add_argument("--spool-dir", type=Path, default=None, help="Directory to look in for new pictures (default: ~/spool)")
    p.add_argument("--photo-dir", type=Path, default=None, help="Archive root pictures are moved to (default: ~/Pictures)")
    p.add_argument("--error-dir", type=Path, default=None, help="Where files go when they cannot be spooled (default: ~/spool_error)")
    p.add_argument("--db", type=Path, default=None, help="Fingerprint index file (default: ~/.photo-spool.db)")
    p.add_argument("--dry-run", action="store_true", help="Print what would happen without touching disk")
    p.add_argument("--lenient-index", action="store_true", help="Start with an empty index if the index file is malformed")
    p.add_argument("--workers", type=int, default=1, help="Number of files to spool in parallel")
    p.add_argument("--no-prune", action="store_true", help="Keep empty directories in the spool directory")
    p.add_argument("--report-csv", type=Path, default=None, help="Write a per-file CSV report here")
    p.add_argument("--log-file", type=Path, default=None, help="Also log to this file")
    p.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    return p.parse_args(argv)


def build_config(args) -> SpoolConfig:
    return SpoolConfig.from_home(
        Path.home(),
        spool_dir=args.spool_dir,
        photo_dir=args.photo_dir,
        error_dir=args.error_dir,
        db_path=args.db,
        dry_run=args.dry_run,
        strict_index=not args.lenient_index,
        max_workers=args.workers,
        prune=not args.no_prune,
    )


def ensure_dirs(cfg: SpoolConfig):
    for d in (cfg.error_dir, cfg.photo_dir, cfg.spool_dir):
        d.mkdir(parents=True, exist_ok=True)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    cfg = build_config(args)

    logging.info("=== Photo Spool Started ===")
    logging.info(f"Spool:  {cfg.spool_dir}")
    logging.info(f"Photos: {cfg.photo_dir}")
    logging.info(f"Errors: {cfg.error_dir}")
    logging.info(f"Index:  {cfg.db_path}")

    if cfg.dry_run:
        logging.info("[DRY RUN] Skipping directory creation.")
    else:
        ensure_dirs(cfg)

    app = PhotoSpoolApp(cfg, progress=not args.no_progress)
    try:
        summary = app.run()
    except PhotoSpoolError as e:
        logging.error(f"Spool aborted: {e}")
        return 1
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        return 1

    reporter = ReportGenerator(summary)
    reporter.log_summary()
    if args.report_csv:
        reporter.write_csv(args.report_csv)

    return summary.exit_code


if __name__ == "__main__":
    sys.exit(main())
