"""
Data manager - JSON file storage with async variants so the event loop
never blocks on disk I/O

Root directory: base_path argument, else $STUDYBUDDY_DATA_DIR, else ./data
next to the package.
"""
from pathlib import Path
import json
import logging
import os
from typing import Optional, Dict, Any

import aiofiles

DATA_DIR_ENV = "STUDYBUDDY_DATA_DIR"

logger = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """A save failed. In-memory state is untouched, the caller may retry."""

    retryable = True


class DataManager:
    """
    Data manager - JSON file storage

    Usage:
        dm = DataManager()
        # sync methods (simple cases)
        dm.save_json('data/pet/pets.json', {'u1': {...}})
        pets = dm.load_json('data/pet/pets.json')

        # async methods (preferred inside the event loop)
        pets = await dm.async_load_json('data/pet/pets.json')
        await dm.async_save_json('data/pet/pets.json', pets)
    """

    def __init__(self, base_path: Optional[Path] = None):
        if base_path:
            self.root = Path(base_path)
        elif os.getenv(DATA_DIR_ENV):
            self.root = Path(os.environ[DATA_DIR_ENV])
        else:
            self.root = Path(__file__).resolve().parents[2] / "data"

        self.root.mkdir(parents=True, exist_ok=True)

    # ========== sync methods ==========
    def load_json(self, filename) -> Dict[str, Any]:
        """Load any JSON file below the root"""
        return self._read_json(self.root / filename)

    def save_json(self, filename, data: Dict[str, Any]):
        """Save any JSON file below the root"""
        self._write_json(self.root / filename, data)

    # ========== async methods ==========
    async def async_load_json(self, filename) -> Dict[str, Any]:
        """Load any JSON file asynchronously"""
        p = self.root / filename
        if not p.exists():
            return {}
        try:
            async with aiofiles.open(p, 'r', encoding='utf-8') as f:
                content = await f.read()
            return json.loads(content)
        except (OSError, ValueError) as e:
            logger.warning("unreadable data file %s: %s", p, e)
            return {}

    async def async_save_json(self, filename, data: Dict[str, Any]):
        """Save any JSON file asynchronously"""
        p = self.root / filename
        content = json.dumps(data, ensure_ascii=False, indent=2)
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(p, 'w', encoding='utf-8') as f:
                await f.write(content)
        except OSError as e:
            raise PersistenceError(f"failed to save {p}: {e}") from e

    # ========== internals ==========
    def _read_json(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("unreadable data file %s: %s", path, e)
            return {}

    def _write_json(self, path: Path, data: Dict[str, Any]):
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"failed to save {path}: {e}") from e

    def get_data_path(self) -> Path:
        """Get the data root directory"""
        return self.root
