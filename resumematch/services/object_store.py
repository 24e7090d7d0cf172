import asyncio
import logging
import os
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List

from resumematch.core.exceptions import StorageError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

@dataclass(frozen=True)
class StoredObject:
    path: str
    size: int

def _safe_filename(filename: str) -> str:
    name = os.path.basename(filename or "").strip()
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "upload"

class LocalObjectStore:
    """
    Blob storage on the local filesystem.

    Every upload gets a fresh unique name, so storing the same bytes twice
    yields two objects. Handles are paths relative to the storage root.
    """

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        candidate = (self.root / path.lstrip("/")).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise StorageError(f"Path escapes storage root: {path}")
        return candidate

    def _write(self, filename: str, data: bytes) -> StoredObject:
        self.root.mkdir(parents=True, exist_ok=True)
        name = f"{uuid.uuid4().hex}_{_safe_filename(filename)}"
        target = self.root / name
        with open(target, "wb") as f:
            f.write(data)
        return StoredObject(path=name, size=len(data))

    async def upload(self, filename: str, data: bytes) -> StoredObject:
        try:
            stored = await asyncio.to_thread(self._write, filename, data)
        except OSError as e:
            logger.error(f"Upload of {filename} failed: {e}")
            raise StorageError(f"Failed to store {filename}") from e
        logger.info(f"Stored {stored.path} ({stored.size} bytes)")
        return stored

    async def read(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except FileNotFoundError as e:
            raise StorageError(f"Object not found: {path}") from e
        except OSError as e:
            raise StorageError(f"Failed to read {path}") from e

    def _scan(self) -> List[StoredObject]:
        if not self.root.exists():
            return []
        objects = []
        for entry in sorted(self.root.iterdir()):
            if entry.is_file():
                objects.append(StoredObject(path=entry.name, size=entry.stat().st_size))
        return objects

    async def list_dir(self) -> List[StoredObject]:
        """List every object directly under the storage root."""
        try:
            return await asyncio.to_thread(self._scan)
        except OSError as e:
            raise StorageError("Failed to list storage root") from e

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(target.unlink)
        except FileNotFoundError as e:
            raise StorageError(f"Object not found: {path}") from e
        except OSError as e:
            raise StorageError(f"Failed to delete {path}") from e
        logger.info(f"Deleted {path}")
