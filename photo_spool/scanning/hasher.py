import hashlib
from pathlib import Path

from .. import config
from ..exceptions import FileHashError


class FileHasher:
    def compute_hash(self, path: Path) -> str:
        """
        Computes the content fingerprint (SHA-256 hex digest) of a file.

        The whole byte stream is read in fixed-size binary chunks, so the
        result depends only on content: never on the name, the metadata,
        or where newline bytes happen to fall.

        Raises:
            FileHashError: if the file cannot be opened or read.
        """
        try:
            return self._full_sha256(path)
        except OSError as e:
            raise FileHashError("Could not read file for hashing", path, e) from e

    def _full_sha256(self, path: Path) -> str:
        """Reads entire file."""
        h = hashlib.sha256()
        with open(path, 'rb') as f:
            while chunk := f.read(config.HASH_CHUNK_SIZE):
                h.update(chunk)
        return h.hexdigest()
