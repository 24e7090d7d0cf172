from fastapi import APIRouter
from resumematch.routers import resume

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(resume.router, prefix="/resumes", tags=["Resumes"])
