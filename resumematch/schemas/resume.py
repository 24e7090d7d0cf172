from pydantic import BaseModel, ConfigDict, Field, computed_field, field_serializer, field_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, List, Literal, Optional, Union

RESUME_KEY_PREFIX = "resume:"
PLAN_KEY_SUFFIX = "_plan"

def resume_key(resume_id: str) -> str:
    return f"{RESUME_KEY_PREFIX}{resume_id}"

def plan_key(resume_id: str) -> str:
    return f"{resume_id}{PLAN_KEY_SUFFIX}"

# Integer scores stay integers in the stored JSON
Score = Union[Annotated[int, Field(ge=0, le=100)], Annotated[float, Field(ge=0, le=100)]]

class CamelModel(BaseModel):
    """Stored and served with camelCase keys; accepts snake_case on input too."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# --- FEEDBACK SCHEMAS ---

class Tip(CamelModel):
    type: Literal["good", "improve"]
    tip: str
    explanation: Optional[str] = None

class CategoryFeedback(CamelModel):
    # Extra keys from the critique (e.g. skill-gap lists) are kept as returned
    model_config = ConfigDict(extra="allow")

    score: Score
    tips: List[Tip] = Field(default_factory=list)

class Feedback(CamelModel):
    model_config = ConfigDict(extra="allow")

    overall_score: Score
    ats: Optional[CategoryFeedback] = Field(default=None, alias="ATS")
    tone_and_style: CategoryFeedback
    content: CategoryFeedback
    structure: CategoryFeedback
    # Skill gaps; the study plan is generated from this section
    skills: CategoryFeedback

# --- RESUME SCHEMAS ---

class Resume(CamelModel):
    id: str
    resume_path: str
    image_path: str
    company_name: str = ""
    job_title: str = ""
    job_description: str = ""
    feedback: Optional[Feedback] = None

    @field_validator("feedback", mode="before")
    @classmethod
    def _empty_feedback(cls, value):
        # Pending analysis is stored as an empty string
        if value == "" or value == {}:
            return None
        return value

    @field_serializer("feedback", mode="wrap")
    def _serialize_feedback(self, value, handler):
        if value is None:
            return ""
        return handler(value)

    @property
    def key(self) -> str:
        return resume_key(self.id)

    @property
    def has_feedback(self) -> bool:
        return self.feedback is not None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str) -> "Resume":
        return cls.model_validate_json(raw)

class SubmissionData(CamelModel):
    resume: Optional[Resume] = None
    statuses: List[str] = Field(default_factory=list)

# --- STUDY PLAN / WIPE SCHEMAS ---

class StudyPlanResponse(CamelModel):
    resume_id: str
    plan: str

class WipeFailure(BaseModel):
    path: str
    error: str

class WipeReport(BaseModel):
    deleted: List[str] = Field(default_factory=list)
    failed: List[WipeFailure] = Field(default_factory=list)
    flushed: bool = False
    flush_error: Optional[str] = None

    @computed_field
    @property
    def status(self) -> str:
        if self.failed or not self.flushed:
            return "partial"
        return "complete"
