import logging
from typing import List, Optional

from pydantic import ValidationError

from resumematch.core.exceptions import AppException, CorruptRecordError
from resumematch.schemas.resume import RESUME_KEY_PREFIX, Resume, WipeFailure, WipeReport, resume_key

logger = logging.getLogger(__name__)

class ResumeRepository:
    """Read and bulk-delete access to stored Resume records."""

    def __init__(self, services):
        self.kv = services.kv
        self.object_store = services.object_store

    async def list_all(self) -> List[Resume]:
        """
        Every parseable Resume in the store.

        A record that fails to parse is logged and skipped; the rest of the
        listing is still returned.
        """
        items = await self.kv.list(f"{RESUME_KEY_PREFIX}*", with_values=True)
        resumes = []
        for item in items:
            try:
                resumes.append(Resume.from_json(item.value))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable record {item.key}: {e.error_count()} error(s)")
        return resumes

    async def get(self, resume_id: str) -> Optional[Resume]:
        key = resume_key(resume_id)
        raw = await self.kv.get(key)
        if raw is None:
            return None
        try:
            return Resume.from_json(raw)
        except ValidationError as e:
            logger.error(f"Record {key} is corrupt: {e}")
            raise CorruptRecordError(key) from e

    async def read_artifact(self, path: str) -> bytes:
        return await self.object_store.read(path)

    async def wipe_all(self) -> WipeReport:
        """
        Delete every stored artifact, then flush the whole key-value namespace.

        Best-effort, not transactional: artifacts already deleted are not
        restored when a later deletion fails, and the flush still runs.
        """
        report = WipeReport()

        objects = await self.object_store.list_dir()
        for obj in objects:
            try:
                await self.object_store.delete(obj.path)
                report.deleted.append(obj.path)
            except AppException as e:
                logger.error(f"Wipe could not delete {obj.path}: {e.message}")
                report.failed.append(WipeFailure(path=obj.path, error=e.message))

        try:
            await self.kv.flush()
            report.flushed = True
        except AppException as e:
            logger.error(f"Wipe could not flush key-value store: {e.message}")
            report.flush_error = e.message

        logger.info(
            f"Wipe finished ({report.status}): {len(report.deleted)} deleted, "
            f"{len(report.failed)} failed, flushed={report.flushed}"
        )
        return report
