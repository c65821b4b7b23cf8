import asyncio
import logging
from pathlib import Path
import threading
from typing import Dict, Optional

from pydantic import ValidationError

from ..common.data_manager import DataManager
from .models import Pet

logger = logging.getLogger(__name__)


class PetRepository:
    """Stores one pet per user in data/pet/pets.json as {user_id: pet}."""

    def __init__(self, data_manager: DataManager):
        self.dm = data_manager
        self.data_path = Path(self.dm.root) / 'data' / 'pet'
        self.data_path.mkdir(parents=True, exist_ok=True)
        self.pet_file = Path('data') / 'pet' / 'pets.json'
        # the whole mapping is rewritten on every save; guard read-modify-write
        self._sync_lock = threading.Lock()
        self._async_lock: Optional[asyncio.Lock] = None
        self._lock_loop = None

    def _decode(self, user_id: str, raw: Optional[dict]) -> Optional[Pet]:
        if not raw:
            return None
        try:
            return Pet.from_dict(raw)
        except ValidationError as e:
            logger.warning("discarding invalid stored pet for %s: %s", user_id, e)
            return None

    @staticmethod
    def _as_mapping(data) -> Dict[str, dict]:
        if not isinstance(data, dict):
            logger.warning("pet file does not hold a user mapping, ignoring it")
            return {}
        return data

    def load_all(self) -> Dict[str, dict]:
        return self._as_mapping(self.dm.load_json(self.pet_file))

    def load(self, user_id: str) -> Optional[Pet]:
        return self._decode(user_id, self.load_all().get(user_id))

    def save(self, user_id: str, pet: Pet):
        with self._sync_lock:
            data = self.load_all()
            data[user_id] = pet.to_dict()
            self.dm.save_json(self.pet_file, data)

    async def async_load(self, user_id: str) -> Optional[Pet]:
        data = self._as_mapping(await self.dm.async_load_json(self.pet_file))
        return self._decode(user_id, data.get(user_id))

    async def async_save(self, user_id: str, pet: Pet):
        async with self._lock():
            data = self._as_mapping(await self.dm.async_load_json(self.pet_file))
            data[user_id] = pet.to_dict()
            await self.dm.async_save_json(self.pet_file, data)

    def _lock(self) -> asyncio.Lock:
        # one lock per event loop, a repository may outlive the loop it was first used on
        loop = asyncio.get_running_loop()
        if self._lock_loop is not loop:
            self._async_lock = asyncio.Lock()
            self._lock_loop = loop
        return self._async_lock
