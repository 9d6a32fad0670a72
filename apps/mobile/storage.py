# apps/mobile/storage.py
import asyncio
import json
import logging
import os
from pathlib import Path

from asgiref.sync import sync_to_async

logger = logging.getLogger(__name__)

SAVED_FAMILY_CODE_KEY = 'savedFamilyCode'
CHILD_DATA_KEY = 'childData'
IS_CHILD_KEY = 'isChild'
IS_PARENT_KEY = 'isParent'
HAS_CHILD_KEY = 'hasChild'
PARENT_DETAILS_KEY = 'parentDetails'
CHILD_LOCATIONS_KEY = 'childLocations'


def sos_key(family_code):
    return f'sos-{family_code}'


class LocalStore:
    """
    Device-durable key/value store. Values are strings, like AsyncStorage;
    ``get_json``/``set_json`` handle (de)serialisation for structured values.

    Everything lives in one JSON file that is rewritten atomically on each change.
    """

    def __init__(self, path):
        self.path = Path(path).expanduser()
        self._lock = asyncio.Lock()

    def _read(self):
        if not self.path.exists():
            return {}
        try:
            with self.path.open('r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read local store {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + '.tmp')
        with tmp_path.open('w', encoding='utf-8') as f:
            json.dump(data, f)
        os.replace(tmp_path, self.path)

    async def _update(self, mutate):
        async with self._lock:
            data = await sync_to_async(self._read)()
            mutate(data)
            await sync_to_async(self._write)(data)

    async def get_item(self, key):
        data = await sync_to_async(self._read)()
        return data.get(key)

    async def set_item(self, key, value):
        await self._update(lambda data: data.__setitem__(key, str(value)))

    async def remove_item(self, key):
        await self._update(lambda data: data.pop(key, None))

    async def clear(self):
        await self._update(lambda data: data.clear())

    async def get_json(self, key, default=None):
        raw = await self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Stored value for '{key}' is not valid JSON; ignoring it")
            return default

    async def set_json(self, key, value):
        await self.set_item(key, json.dumps(value))
