"""
Resume analysis pipeline.

upload original -> rasterize first page -> upload image -> persist placeholder
-> critique -> parse and finalize.

Stages run strictly in order and each one is gated on the previous. A stage
failure is reported through the returned SubmissionResult and never retried;
whatever was stored before the failure stays where it is.
"""
import asyncio
import inspect
import logging
import os
import re
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Union

from pydantic import ValidationError

from resumematch.core import prompts
from resumematch.core.exceptions import FeedbackParseError, InvalidDocumentError, StageError
from resumematch.core.logging import resume_id_var
from resumematch.schemas.resume import Feedback, Resume, SubmissionData
from resumematch.services.rasterizer import rasterize_first_page

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".pdf"}
ALLOWED_CONTENT_TYPES = {"application/pdf", "application/x-pdf"}

class PipelineStage(str, Enum):
    UPLOAD = "upload"
    CONVERT = "convert"
    UPLOAD_IMAGE = "upload_image"
    PERSIST = "persist"
    ANALYZE = "analyze"
    FINALIZE = "finalize"

# (progress message, failure message)
STAGE_MESSAGES = {
    PipelineStage.UPLOAD: ("Uploading the file...", "Error: Failed to upload file"),
    PipelineStage.CONVERT: ("Converting to image...", "Error: Failed to convert PDF to image"),
    PipelineStage.UPLOAD_IMAGE: ("Uploading the image...", "Error: Failed to upload image"),
    PipelineStage.PERSIST: ("Preparing data...", "Error: Failed to save resume"),
    PipelineStage.ANALYZE: ("Analyzing...", "Error: Failed to analyze resume"),
    PipelineStage.FINALIZE: (None, "Error: Failed to save feedback"),
}
COMPLETE_MESSAGE = "Analysis complete"

@dataclass(frozen=True)
class UploadedDocument:
    filename: str
    content: bytes
    content_type: Optional[str] = None

@dataclass(frozen=True)
class StageProgress:
    stage: Optional[PipelineStage]
    message: str
    failed: bool = False

ProgressCallback = Callable[[StageProgress], Union[None, Awaitable[None]]]

@dataclass
class SubmissionResult:
    resume: Optional[Resume] = None
    statuses: List[str] = field(default_factory=list)
    failed_stage: Optional[PipelineStage] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failed_stage is None

    @property
    def status(self) -> str:
        return self.statuses[-1] if self.statuses else ""

    def to_data(self) -> SubmissionData:
        return SubmissionData(resume=self.resume, statuses=self.statuses)

    def raise_for_stage(self) -> None:
        if self.failed_stage is not None:
            raise StageError(
                self.failed_stage.value,
                self.status,
                details={"resume_id": self.resume.id if self.resume else None, "cause": self.error},
                data=self.to_data(),
            )

def _json_payload(text: str) -> str:
    # Models sometimes wrap the object in prose or code fences
    match = re.search(r"\{.*\}", text, re.DOTALL)
    return match.group() if match else text

def parse_feedback(text: Optional[str]) -> Feedback:
    if text is None:
        raise FeedbackParseError("Critique response has no text block.")
    try:
        return Feedback.model_validate_json(_json_payload(text))
    except ValidationError as e:
        raise FeedbackParseError(
            "Critique response is not a valid feedback object.",
            details={"errors": e.error_count()},
        ) from e

class AnalysisPipeline:
    def __init__(self, services):
        self.settings = services.settings
        self.object_store = services.object_store
        self.inference = services.inference
        self.kv = services.kv

    def validate_document(self, document: UploadedDocument) -> None:
        """Reject anything that is not a non-empty PDF within the size limit."""
        ext = os.path.splitext(document.filename or "")[1].lower()
        if ext not in ALLOWED_EXTENSIONS and document.content_type not in ALLOWED_CONTENT_TYPES:
            raise InvalidDocumentError(f"File type {ext or 'unknown'} not allowed. Upload a PDF.")
        if not document.content:
            raise InvalidDocumentError("Uploaded file is empty.")
        if len(document.content) > self.settings.max_upload_bytes:
            raise InvalidDocumentError(f"File size exceeds {self.settings.max_upload_mb}MB limit")

    async def _emit(
        self,
        result: SubmissionResult,
        on_progress: Optional[ProgressCallback],
        stage: Optional[PipelineStage],
        message: str,
        failed: bool = False,
    ) -> None:
        result.statuses.append(message)
        if on_progress is None:
            return
        outcome = on_progress(StageProgress(stage=stage, message=message, failed=failed))
        if inspect.isawaitable(outcome):
            await outcome

    async def _start(self, result, on_progress, stage: PipelineStage) -> None:
        message = STAGE_MESSAGES[stage][0]
        logger.info(f"Stage {stage.value}: started")
        if message:
            await self._emit(result, on_progress, stage, message)

    async def _fail(self, result, on_progress, stage: PipelineStage, error: Exception) -> SubmissionResult:
        result.failed_stage = stage
        result.error = str(error) or error.__class__.__name__
        logger.error(f"Stage {stage.value}: failed: {result.error}")
        await self._emit(result, on_progress, stage, STAGE_MESSAGES[stage][1], failed=True)
        return result

    async def submit(
        self,
        document: UploadedDocument,
        company_name: str,
        job_title: str,
        job_description: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> SubmissionResult:
        """
        Run the full analysis for one uploaded resume.

        Returns a SubmissionResult; stage failures are reported there and not
        raised. A critique that cannot be parsed raises FeedbackParseError and
        leaves the stored record with empty feedback.
        """
        self.validate_document(document)
        process_start = time.time()
        result = SubmissionResult()
        logger.info(f"=== Starting analysis for {document.filename} ({len(document.content)} bytes) ===")

        # Stage 1: store the original document
        await self._start(result, on_progress, PipelineStage.UPLOAD)
        try:
            uploaded = await self.object_store.upload(document.filename, document.content)
        except Exception as e:
            return await self._fail(result, on_progress, PipelineStage.UPLOAD, e)

        # Stage 2: render the first page
        await self._start(result, on_progress, PipelineStage.CONVERT)
        try:
            image = await asyncio.to_thread(
                rasterize_first_page, document.content, document.filename, self.settings.raster_scale
            )
        except Exception as e:
            logger.warning(f"Leaving orphaned artifact {uploaded.path}")
            return await self._fail(result, on_progress, PipelineStage.CONVERT, e)

        # Stage 3: store the preview image
        await self._start(result, on_progress, PipelineStage.UPLOAD_IMAGE)
        try:
            uploaded_image = await self.object_store.upload(image.filename, image.data)
        except Exception as e:
            logger.warning(f"Leaving orphaned artifact {uploaded.path}")
            return await self._fail(result, on_progress, PipelineStage.UPLOAD_IMAGE, e)

        # Stage 4: durable placeholder before the expensive call
        await self._start(result, on_progress, PipelineStage.PERSIST)
        resume = Resume(
            id=str(uuid.uuid4()),
            resume_path=uploaded.path,
            image_path=uploaded_image.path,
            company_name=company_name or "",
            job_title=job_title or "",
            job_description=job_description or "",
        )
        token = resume_id_var.set(resume.id)
        try:
            try:
                await self.kv.set(resume.key, resume.to_json())
            except Exception as e:
                logger.warning(f"Leaving orphaned artifacts {uploaded.path}, {uploaded_image.path}")
                return await self._fail(result, on_progress, PipelineStage.PERSIST, e)
            result.resume = resume
            logger.info(f"Stored placeholder {resume.key}")

            # Stage 5: critique
            await self._start(result, on_progress, PipelineStage.ANALYZE)
            instructions = prompts.prepare_instructions(job_title, job_description)
            try:
                response = await self.inference.feedback(resume.resume_path, instructions)
            except Exception as e:
                return await self._fail(result, on_progress, PipelineStage.ANALYZE, e)
            text = response.text if response is not None else None
            # No content, or a text block that is blank; a reply with no text block at all is a parse failure
            if response is None or not response.message.content or (text is not None and not text.strip()):
                return await self._fail(
                    result, on_progress, PipelineStage.ANALYZE, ValueError("empty critique response")
                )

            # Stage 6: parse, then overwrite the placeholder. Parse errors propagate.
            logger.info(f"Stage {PipelineStage.FINALIZE.value}: started")
            feedback = parse_feedback(text)
            completed = resume.model_copy(update={"feedback": feedback})
            try:
                await self.kv.set(completed.key, completed.to_json())
            except Exception as e:
                return await self._fail(result, on_progress, PipelineStage.FINALIZE, e)
            result.resume = completed

            await self._emit(result, on_progress, None, COMPLETE_MESSAGE)
            logger.info(
                f"=== Analysis complete for {resume.id}: score {feedback.overall_score} "
                f"in {time.time() - process_start:.2f}s ==="
            )
            return result
        finally:
            resume_id_var.reset(token)
