import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from resumematch.core import prompts
from resumematch.core.exceptions import AIError
from resumematch.schemas.resume import plan_key
from resumematch.services.inference_client import text_message

logger = logging.getLogger(__name__)

class KeyedLocks:
    """One asyncio.Lock per key, dropped once nobody holds or waits on it."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)

class StudyPlanCache:
    """
    Cache-aside generator for the per-resume study plan.

    A cached plan is returned verbatim and never regenerated. Callers for the
    same resume are serialized per key within the process, and the write is
    create-if-absent so a plan stays write-once across processes.
    """

    def __init__(self, services):
        self.kv = services.kv
        self.inference = services.inference
        self.model = services.settings.ai.study_plan_model
        self.locks = services.plan_locks

    async def get_or_generate(self, resume_id: str, skills_data: Any) -> str:
        key = plan_key(resume_id)

        async with self.locks.hold(key):
            cached = await self.kv.get(key)
            if cached:
                logger.info(f"Study plan cache hit for {resume_id}")
                return cached

            logger.info(f"Study plan cache miss for {resume_id}, generating with {self.model}")
            prompt = prompts.get_prompt(
                prompts.STUDY_PLAN_TEMPLATE,
                skills_json=json.dumps(skills_data, indent=2, ensure_ascii=False),
            )
            response = await self.inference.chat([text_message("user", prompt)], model=self.model)
            text = response.text if response else None
            if not text:
                raise AIError("AI service returned an empty study plan.", details={"resume_id": resume_id})

            if not await self.kv.set_if_absent(key, text):
                # Another process stored its plan first; that one wins
                existing = await self.kv.get(key)
                if existing:
                    logger.info(f"Study plan for {resume_id} was stored concurrently, keeping stored copy")
                    return existing
                await self.kv.set(key, text)

            return text
