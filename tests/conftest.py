import shutil
from datetime import datetime
from pathlib import Path

import pytest
from PIL import Image

from photo_spool import config
from photo_spool.config import SpoolConfig


def write_image(path: Path, capture_time=None, color=(200, 30, 30), fmt="JPEG", raw_value=None) -> Path:
    """
    Writes a small real image, optionally carrying an EXIF DateTimeOriginal.
    Different colors give different bytes; same arguments give the same bytes.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new("RGB", (16, 16), color=color)
    kwargs = {}
    value = raw_value
    if capture_time is not None:
        value = capture_time.strftime(config.EXIF_DATE_FORMAT)
    if value is not None:
        exif = Image.Exif()
        exif[config.EXIF_IFD_POINTER] = {config.EXIF_DATETIME_ORIGINAL: value}
        kwargs["exif"] = exif
    img.save(path, format=fmt, **kwargs)
    return path


def copy_file(src: Path, dest: Path) -> Path:
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src, dest)
    return dest


def snapshot(root: Path) -> dict:
    """Every file under root mapped to its bytes."""
    return {p.relative_to(root): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}


@pytest.fixture
def capture_time():
    return datetime(2023, 7, 4, 10, 15, 30)


@pytest.fixture
def dirs(tmp_path):
    """spool/archive/error directories plus the (not yet existing) index path."""
    d = {
        "spool": tmp_path / "spool",
        "archive": tmp_path / "archive",
        "error": tmp_path / "error",
    }
    for p in d.values():
        p.mkdir()
    d["db"] = tmp_path / "index.json"
    return d


@pytest.fixture
def cfg(dirs):
    return SpoolConfig(
        spool_dir=dirs["spool"],
        photo_dir=dirs["archive"],
        error_dir=dirs["error"],
        db_path=dirs["db"],
    )
