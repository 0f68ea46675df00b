"""
JSON document persistence shared by all stores.

Each store owns one JSON file under the data directory. Writes go to a
temp file in the same directory and are moved into place, so readers never
see a half-written document. Every read-modify-write runs under the store's
RLock; callers build atomic conditional updates on top of mutate().
"""

import json
import shutil
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from ..utils.exceptions import StorageUnavailableError
from ..utils.logger import get_logger

logger = get_logger(__name__)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_fixed(0.05),
    retry=retry_if_exception_type(OSError),
    reraise=True,
)
def _atomic_write(path: Path, payload: Dict[str, Any]) -> None:
    """Atomically write JSON to the target path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w", dir=str(path.parent), delete=False, encoding="utf-8"
    ) as tf:
        json.dump(payload, tf, indent=2, ensure_ascii=False, default=str)
        temp_path = Path(tf.name)
    try:
        shutil.move(str(temp_path), str(path))
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


class JsonDocumentStore:
    """One JSON document on disk, guarded by a re-entrant lock"""

    filename: str = "store.json"

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.path = self.data_dir / self.filename
        self._lock = threading.RLock()

    def _empty(self) -> Dict[str, Any]:
        return {}

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return self._empty()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning("Corrupt store file, starting empty", path=str(self.path), error=str(e))
            return self._empty()
        except OSError as e:
            raise StorageUnavailableError(f"Unable to read {self.filename}") from e
        if not isinstance(raw, dict):
            return self._empty()
        return raw

    def _write(self, payload: Dict[str, Any]) -> None:
        try:
            _atomic_write(self.path, payload)
        except OSError as e:
            logger.error("Store write failed", path=str(self.path), error=str(e))
            raise StorageUnavailableError(f"Unable to write {self.filename}") from e

    def load(self) -> Dict[str, Any]:
        with self._lock:
            return self._read()

    @contextmanager
    def mutate(self) -> Generator[Dict[str, Any], None, None]:
        """
        Yield the current document for in-place modification and persist it
        on normal exit. Nothing is written if the block raises.
        """
        with self._lock:
            document = self._read()
            yield document
            self._write(document)
