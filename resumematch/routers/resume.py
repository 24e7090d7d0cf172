import logging
from typing import List

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile

from resumematch.core.exceptions import FeedbackPendingError, ResumeNotFoundError
from resumematch.core.schemas import ApiResponse
from resumematch.dependencies import get_pipeline, get_repository, get_study_plans
from resumematch.schemas.resume import Resume, StudyPlanResponse, SubmissionData, WipeReport
from resumematch.services.analysis_pipeline import AnalysisPipeline, UploadedDocument
from resumematch.services.resume_repository import ResumeRepository
from resumematch.services.study_plan_cache import StudyPlanCache

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_resume(resume_id: str, repository: ResumeRepository) -> Resume:
    resume = await repository.get(resume_id)
    if resume is None:
        raise ResumeNotFoundError(resume_id)
    return resume


@router.post("", response_model=ApiResponse[SubmissionData])
async def submit_resume(
    file: UploadFile = File(...),
    company_name: str = Form(""),
    job_title: str = Form(""),
    job_description: str = Form(""),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    content = await file.read()
    result = await pipeline.submit(
        UploadedDocument(filename=file.filename or "resume.pdf", content=content, content_type=file.content_type),
        company_name=company_name,
        job_title=job_title,
        job_description=job_description,
    )
    # Stage failures surface as StageError, carrying whatever was stored
    result.raise_for_stage()
    return ApiResponse[SubmissionData].ok(result.to_data())


@router.get("", response_model=List[Resume])
async def list_resumes(repository: ResumeRepository = Depends(get_repository)):
    return await repository.list_all()


@router.delete("", response_model=WipeReport)
async def wipe_resumes(repository: ResumeRepository = Depends(get_repository)):
    """Delete all analysis history: every stored file and every key."""
    report = await repository.wipe_all()
    if report.status != "complete":
        logger.warning(f"Wipe finished with partial failure: {len(report.failed)} artifact(s) left")
    return report


@router.get("/{resume_id}", response_model=Resume)
async def get_resume(resume_id: str, repository: ResumeRepository = Depends(get_repository)):
    return await _load_resume(resume_id, repository)


@router.get("/{resume_id}/document")
async def get_resume_document(resume_id: str, repository: ResumeRepository = Depends(get_repository)):
    resume = await _load_resume(resume_id, repository)
    content = await repository.read_artifact(resume.resume_path)
    return Response(content=content, media_type="application/pdf")


@router.get("/{resume_id}/image")
async def get_resume_image(resume_id: str, repository: ResumeRepository = Depends(get_repository)):
    resume = await _load_resume(resume_id, repository)
    content = await repository.read_artifact(resume.image_path)
    return Response(content=content, media_type="image/png")


@router.post("/{resume_id}/study-plan", response_model=StudyPlanResponse)
async def get_study_plan(
    resume_id: str,
    repository: ResumeRepository = Depends(get_repository),
    study_plans: StudyPlanCache = Depends(get_study_plans),
):
    resume = await _load_resume(resume_id, repository)
    if not resume.has_feedback:
        raise FeedbackPendingError(resume_id)

    skills = resume.feedback.skills.model_dump(by_alias=True, exclude_none=True)
    plan = await study_plans.get_or_generate(resume.id, skills)
    return StudyPlanResponse(resume_id=resume.id, plan=plan)
