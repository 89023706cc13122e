"""
Configuration constants and run settings for the photo spooler.
"""
from dataclasses import dataclass
from pathlib import Path

# --- File Type Definitions ---
JPEG_EXTS = {'.jpg', '.jpeg'}
PNG_EXTS = {'.png'}
IMAGE_EXTS = JPEG_EXTS | PNG_EXTS

# Archive names always use the short form
EXT_ALIASES = {'.jpeg': '.jpg'}

# --- Metadata Parsing ---
# Only the original capture time places a file in the archive.
DATE_TAGS = [
    'EXIF DateTimeOriginal',
]
EXIF_IFD_POINTER = 0x8769
EXIF_DATETIME_ORIGINAL = 0x9003
EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"

# --- Hashing ---
HASH_CHUNK_SIZE = 64 * 1024  # 64 KB chunks for reading

# --- Organization ---
FOLDER_PATTERN = "{year}/{month:02d}"
NAME_PATTERN = "%Y-%m-%d_%H%M%S"
DUPLICATE_SUFFIX = "DUPLICATE"
COLLISION_SEPARATOR = "::"

# One hour of one-second steps before giving up on a free name
MAX_COLLISION_ATTEMPTS = 3600

# --- Defaults (relative to the user's home directory) ---
DEFAULT_SPOOL_DIR = "spool"
DEFAULT_PHOTO_DIR = "Pictures"
DEFAULT_ERROR_DIR = "spool_error"
DEFAULT_DB_NAME = ".photo-spool.db"


@dataclass
class SpoolConfig:
    """
    Everything a spool run needs to know about the outside world.
    """
    spool_dir: Path
    photo_dir: Path
    error_dir: Path
    db_path: Path
    dry_run: bool = False
    strict_index: bool = True
    max_workers: int = 1
    max_collision_attempts: int = MAX_COLLISION_ATTEMPTS
    prune: bool = True

    @classmethod
    def from_home(cls, home: Path, **overrides) -> "SpoolConfig":
        settings = {
            'spool_dir': home / DEFAULT_SPOOL_DIR,
            'photo_dir': home / DEFAULT_PHOTO_DIR,
            'error_dir': home / DEFAULT_ERROR_DIR,
            'db_path': home / DEFAULT_DB_NAME,
        }
        settings.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**settings)
