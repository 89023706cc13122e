import logging
from pathlib import Path
from datetime import datetime
from typing import Optional

import exifread
from PIL import Image, UnidentifiedImageError

from .. import config
from ..exceptions import MetadataExtractionError


class MetadataExtractor:
    """
    Reads the original capture time out of an image's embedded metadata.

    Strategies:
      - 'exifread' first (fast, Python-native, handles JPEG and PNG eXIf).
      - 'Pillow' second, for files exifread cannot make sense of.

    There is deliberately no filesystem-time fallback: a file without a
    usable capture time is an error for the caller to route.
    """

    def get_capture_time(self, path: Path) -> datetime:
        """
        Returns the DateTimeOriginal of the image at ``path``.

        Raises:
            MetadataExtractionError: the file cannot be opened, carries no
                metadata block, lacks the tag, or the tag does not parse.
        """
        try:
            raw = self._read_exifread(path)
        except OSError as e:
            raise MetadataExtractionError("Could not open file for metadata", path, e) from e

        if raw is None:
            raw = self._read_pillow(path)

        if raw is None:
            raise MetadataExtractionError("No DateTimeOriginal tag found", path)

        dt = self._parse_exif_date(raw)
        if dt is None:
            raise MetadataExtractionError(f"Unparsable DateTimeOriginal value {raw!r}", path)
        return dt

    # --- Internal Extraction Helpers ---

    def _read_exifread(self, path: Path) -> Optional[str]:
        with path.open('rb') as f:
            try:
                # details=False speeds up processing significantly
                tags = exifread.process_file(f, details=False)
            except Exception as e:
                # exifread raises a grab bag of errors on corrupt blocks
                logging.debug(f"ExifRead failed for {path}: {e}")
                return None

        for tag in config.DATE_TAGS:
            if tag in tags:
                return str(tags[tag]).strip()
        return None

    def _read_pillow(self, path: Path) -> Optional[str]:
        try:
            with Image.open(path) as im:
                exif = im.getexif()
                value = exif.get_ifd(config.EXIF_IFD_POINTER).get(config.EXIF_DATETIME_ORIGINAL)
        except (OSError, UnidentifiedImageError, ValueError) as e:
            logging.debug(f"Pillow EXIF read failed for {path}: {e}")
            return None

        if value is None:
            return None
        if isinstance(value, bytes):
            value = value.decode('ascii', errors='replace')
        return str(value).strip().rstrip('\x00')

    def _parse_exif_date(self, dt_str: str) -> Optional[datetime]:
        """EXIF format is "YYYY:MM:DD HH:MM:SS"; returns a naive datetime."""
        try:
            return datetime.strptime(dt_str, config.EXIF_DATE_FORMAT)
        except ValueError:
            return None
