import os
import shutil
import logging
from pathlib import Path

from .. import config
from ..exceptions import CollisionError, FileOperationError


class FileMover:
    """
    Relocates files with copy-then-delete semantics, since the spool and the
    archive may live on different volumes. Destinations are created
    exclusively, so an existing file is never overwritten.
    """

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def move(self, src: Path, dest: Path) -> Path:
        """
        Moves ``src`` to ``dest``.

        Raises:
            CollisionError: ``dest`` already exists (nothing is touched).
            FileOperationError: the copy or the source removal failed.
        """
        if self.dry_run:
            logging.info(f"[DRY RUN] Move {src} -> {dest}")
            return dest

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileOperationError("Could not create destination directory", dest.parent, e) from e

        try:
            out = open(dest, 'xb')
        except FileExistsError as e:
            raise CollisionError("Destination already exists", src, destination=dest, cause=e) from e
        except OSError as e:
            raise FileOperationError("Could not create destination file", dest, e) from e

        try:
            with out, open(src, 'rb') as inp:
                shutil.copyfileobj(inp, out)
            shutil.copystat(src, dest)
        except OSError as e:
            self._discard(dest)
            raise FileOperationError(f"Failed to copy to {dest}", src, e) from e

        try:
            os.remove(src)
        except OSError as e:
            # Leaving both copies would import the source again next run.
            self._discard(dest)
            raise FileOperationError(f"Could not remove source after copying to {dest}", src, e) from e

        logging.debug(f"Moved {src} -> {dest}")
        return dest

    def quarantine(self, src: Path, target: Path,
                   max_attempts: int = config.MAX_COLLISION_ATTEMPTS) -> Path:
        """
        Moves ``src`` to ``target`` in the error directory. While that name is
        taken, tries ``target.1``, ``target.2`` and so on. The exclusive create
        in move() decides who gets a name, so concurrent callers never clash.

        Raises:
            CollisionError: every numbered name was taken.
            FileOperationError: the move itself failed.
        """
        candidate = target
        for counter in range(1, max_attempts + 1):
            try:
                return self.move(src, candidate)
            except CollisionError:
                candidate = target.with_name(f"{target.name}.{counter}")
        raise CollisionError(f"No free name in the error directory after {max_attempts} attempts",
                             src, destination=target)

    def _discard(self, partial: Path):
        try:
            partial.unlink()
        except OSError as e:
            logging.warning(f"Could not remove partial copy {partial}: {e}")


def duplicate_name(error_dir: Path, src: Path) -> Path:
    """``IMG_0002.JPG`` -> ``<error_dir>/IMG_0002.JPG.DUPLICATE``"""
    return error_dir / f"{src.name}.{config.DUPLICATE_SUFFIX}"


def collision_name(error_dir: Path, src: Path, dest: Path) -> Path:
    """``IMG_0003.JPG`` vs ``2023-07-04_101530.jpg`` -> ``IMG_0003::2023-07-04_101530.jpg``"""
    stem = src.name.split('.')[0]
    return error_dir / f"{stem}{config.COLLISION_SEPARATOR}{dest.name}"
