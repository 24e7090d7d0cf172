import json

import pytest
from pydantic import ValidationError

from resumematch.schemas.resume import Feedback, Resume, WipeFailure, WipeReport, plan_key, resume_key
from resumematch.services.inference_client import ContentBlock, extract_text


def _resume(**overrides):
    data = {
        "id": "3f2b9c1e-1111-4222-8333-444455556666",
        "resume_path": "aa_resume.pdf",
        "image_path": "bb_resume.png",
        "company_name": "Acme",
        "job_title": "Backend Engineer",
        "job_description": "Go services",
    }
    data.update(overrides)
    return Resume(**data)


def test_keys_are_derived_from_id():
    assert resume_key("abc123") == "resume:abc123"
    assert plan_key("abc123") == "abc123_plan"
    assert _resume().key == "resume:3f2b9c1e-1111-4222-8333-444455556666"


def test_pending_resume_round_trip(feedback_payload):
    """Empty feedback is stored as an empty string and read back as None."""
    resume = _resume()
    raw = resume.to_json()
    stored = json.loads(raw)
    assert stored["feedback"] == ""
    assert stored["resumePath"] == "aa_resume.pdf"
    assert stored["jobTitle"] == "Backend Engineer"

    restored = Resume.from_json(raw)
    assert restored == resume
    assert not restored.has_feedback


def test_completed_resume_round_trip(feedback_payload):
    resume = _resume(feedback=Feedback.model_validate(feedback_payload))
    restored = Resume.from_json(resume.to_json())
    assert restored == resume
    assert restored.feedback.overall_score == 82
    assert restored.feedback.ats.score == 75
    assert json.loads(resume.to_json())["feedback"]["toneAndStyle"]["score"] == 80


def test_integer_scores_stay_integers(feedback_payload):
    feedback_payload["structure"]["score"] = 77.5
    stored = json.loads(_resume(feedback=Feedback.model_validate(feedback_payload)).to_json())["feedback"]
    assert stored["overallScore"] == 82
    assert isinstance(stored["overallScore"], int)
    assert isinstance(stored["skills"]["score"], int)
    assert stored["structure"]["score"] == 77.5


def test_extra_critique_fields_are_kept(feedback_payload):
    feedback_payload["skills"]["missingSkills"] = ["Kubernetes", "gRPC"]
    feedback_payload["summary"] = "Solid backend profile"
    resume = _resume(feedback=Feedback.model_validate(feedback_payload))

    stored = json.loads(resume.to_json())["feedback"]
    assert stored["skills"]["missingSkills"] == ["Kubernetes", "gRPC"]
    assert stored["summary"] == "Solid backend profile"

    restored = Resume.from_json(resume.to_json())
    skills = restored.feedback.skills.model_dump(by_alias=True, exclude_none=True)
    assert skills["missingSkills"] == ["Kubernetes", "gRPC"]
    assert skills["score"] == 70


def test_resume_accepts_stored_camel_case_layout(feedback_payload):
    raw = json.dumps({
        "id": "abc",
        "resumePath": "r.pdf",
        "imagePath": "r.png",
        "companyName": "Acme",
        "jobTitle": "Dev",
        "jobDescription": "Build things",
        "feedback": feedback_payload,
    })
    resume = Resume.from_json(raw)
    assert resume.company_name == "Acme"
    assert resume.feedback.skills.tips[0].tip == "Kubernetes"


def test_null_feedback_is_pending():
    resume = Resume.model_validate({"id": "x", "resumePath": "a", "imagePath": "b", "feedback": None})
    assert resume.feedback is None


def test_feedback_requires_categories(feedback_payload):
    del feedback_payload["skills"]
    with pytest.raises(ValidationError):
        Feedback.model_validate(feedback_payload)


def test_feedback_score_out_of_range(feedback_payload):
    feedback_payload["overallScore"] = 140
    with pytest.raises(ValidationError):
        Feedback.model_validate(feedback_payload)


def test_ats_section_is_optional(feedback_payload):
    del feedback_payload["ATS"]
    assert Feedback.model_validate(feedback_payload).ats is None


def test_wipe_report_status():
    assert WipeReport(deleted=["a"], flushed=True).status == "complete"
    assert WipeReport(flushed=False).status == "partial"
    partial = WipeReport(failed=[WipeFailure(path="a", error="denied")], flushed=True)
    assert partial.status == "partial"
    assert partial.model_dump()["status"] == "partial"


def test_extract_text_plain_string():
    assert extract_text("hello") == "hello"


def test_extract_text_uses_first_text_block():
    blocks = [
        ContentBlock(type="image"),
        ContentBlock(type="text", text="first"),
        ContentBlock(type="text", text="second"),
    ]
    assert extract_text(blocks) == "first"


def test_extract_text_without_text_block():
    assert extract_text([ContentBlock(type="image")]) is None
    assert extract_text(None) is None


def test_response_text_from_blocks(make_reply):
    response = make_reply([{"type": "text", "text": "{\"a\": 1}"}])
    assert response.text == "{\"a\": 1}"
    assert make_reply(None).message.content == ""
