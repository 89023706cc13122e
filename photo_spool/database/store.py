"""
Persistent fingerprint index.

The index is a single JSON file mapping a content fingerprint to the list
of archive paths carrying that content. It is read once when a session
opens and written once when it closes.
"""
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional

from ..exceptions import ClosedError, StoreError


class IndexStore:
    def __init__(self, db_path: Path, strict: bool = True):
        self.db_path = db_path
        # When False, a malformed index is replaced by an empty one.
        self.strict = strict
        self._store: Dict[str, List[str]] = {}
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def load(self):
        """
        Reads the persisted index. A missing file means an empty index.

        Raises:
            StoreError: the file is unreadable, or malformed while strict.
        """
        self._check_open()
        with self._lock:
            self._store = self._read()
        logging.info(f"Loaded index {self.db_path} ({len(self._store)} fingerprints)")

    def lookup(self, fingerprint: str) -> bool:
        self._check_open()
        with self._lock:
            return bool(self._store.get(fingerprint))

    def paths(self, fingerprint: str) -> List[str]:
        self._check_open()
        with self._lock:
            return list(self._store.get(fingerprint, []))

    def insert(self, fingerprint: str, path: Path):
        self._check_open()
        with self._lock:
            self._store.setdefault(fingerprint, []).append(str(path))

    def flush(self):
        """
        Writes the index to a temporary file next to it and renames it into
        place, so readers see either the old or the new index, never half.
        """
        self._check_open()
        with self._lock:
            self._write()

    def close(self):
        """Flushes, then refuses any further use."""
        self.flush()
        self._closed = True

    def __len__(self) -> int:
        return len(self._store)

    def __enter__(self):
        self.load()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self._closed:
            self.close()

    # --- Internal ---

    def _check_open(self):
        if self._closed:
            raise ClosedError("Index store has already been closed", self.db_path)

    def _read(self) -> Dict[str, List[str]]:
        if not self.db_path.exists():
            return {}

        try:
            text = self.db_path.read_text(encoding='utf-8')
        except OSError as e:
            raise StoreError("Could not read index", self.db_path, e) from e

        try:
            return self._validate(json.loads(text))
        except ValueError as e:
            if self.strict:
                raise StoreError("Malformed index", self.db_path, e) from e
            logging.warning(f"Malformed index {self.db_path} ({e}); starting with an empty index")
            return {}

    def _validate(self, data) -> Dict[str, List[str]]:
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        for key, value in data.items():
            if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
                raise ValueError(f"entry {key!r} is not a list of paths")
        return data

    def _write(self):
        payload = json.dumps(self._store, indent=2, sort_keys=True) + "\n"
        parent = self.db_path.parent
        tmp_name: Optional[str] = None
        try:
            parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile('w', encoding='utf-8', dir=parent,
                                             prefix=f".{self.db_path.name}.", suffix=".tmp",
                                             delete=False) as tmp:
                tmp_name = tmp.name
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.db_path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise StoreError("Could not write index", self.db_path, e) from e
        logging.info(f"Wrote index {self.db_path} ({len(self._store)} fingerprints)")


class NoopIndexStore(IndexStore):
    """
    Dry-run stand-in: knows nothing, remembers nothing, writes nothing.
    """

    def __init__(self, db_path: Optional[Path] = None):
        super().__init__(db_path or Path(os.devnull))

    def load(self):
        logging.info("[DRY RUN] Skipping load index.")

    def lookup(self, fingerprint: str) -> bool:
        return False

    def paths(self, fingerprint: str) -> List[str]:
        return []

    def insert(self, fingerprint: str, path: Path):
        pass

    def flush(self):
        logging.info("[DRY RUN] Skipping write index.")

    def close(self):
        self._closed = True
