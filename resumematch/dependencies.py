"""
Service wiring.

Storage, key-value and AI handles are built once at start-up into a
ServiceBundle held on `app.state`, and passed explicitly to the pipeline,
repository and study-plan cache.
"""
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import sessionmaker

from resumematch.core.config import Config
from resumematch.services.analysis_pipeline import AnalysisPipeline
from resumematch.services.inference_client import InferenceClient, OpenRouterInferenceClient
from resumematch.services.kv_store import SQLKeyValueStore
from resumematch.services.object_store import LocalObjectStore
from resumematch.services.resume_repository import ResumeRepository
from resumematch.services.study_plan_cache import KeyedLocks, StudyPlanCache


@dataclass
class ServiceBundle:
    settings: Config
    kv: SQLKeyValueStore
    object_store: LocalObjectStore
    inference: InferenceClient
    plan_locks: KeyedLocks = field(default_factory=KeyedLocks)


def build_services(
    settings: Config,
    session_factory: sessionmaker,
    inference: Optional[InferenceClient] = None,
) -> ServiceBundle:
    object_store = LocalObjectStore(settings.storage_root)
    return ServiceBundle(
        settings=settings,
        kv=SQLKeyValueStore(session_factory),
        object_store=object_store,
        inference=inference or OpenRouterInferenceClient(settings.ai, object_store),
    )


def get_services(request: Request) -> ServiceBundle:
    return request.app.state.services


def get_pipeline(services: ServiceBundle = Depends(get_services)) -> AnalysisPipeline:
    return AnalysisPipeline(services)


def get_repository(services: ServiceBundle = Depends(get_services)) -> ResumeRepository:
    return ResumeRepository(services)


def get_study_plans(services: ServiceBundle = Depends(get_services)) -> StudyPlanCache:
    return StudyPlanCache(services)
