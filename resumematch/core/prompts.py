"""
Centralized AI Prompt Repository
- Resume critique instructions (JSON output)
- Study plan generation (markdown output)
"""

# --- RESUME FEEDBACK PROMPTS ---
FEEDBACK_RESPONSE_FORMAT = """{
    "overallScore": 0-100,
    "ATS": {
        "score": 0-100,
        "tips": [{"type": "good" | "improve", "tip": "short title"}]
    },
    "toneAndStyle": {
        "score": 0-100,
        "tips": [{"type": "good" | "improve", "tip": "short title", "explanation": "detailed explanation"}]
    },
    "content": {
        "score": 0-100,
        "tips": [{"type": "good" | "improve", "tip": "short title", "explanation": "detailed explanation"}]
    },
    "structure": {
        "score": 0-100,
        "tips": [{"type": "good" | "improve", "tip": "short title", "explanation": "detailed explanation"}]
    },
    "skills": {
        "score": 0-100,
        "tips": [{"type": "good" | "improve", "tip": "skill or gap", "explanation": "what is missing and why it matters"}]
    }
}"""

FEEDBACK_INSTRUCTIONS_TEMPLATE = (
    "You are an expert in ATS (Applicant Tracking System) screening and resume analysis.\n"
    "Analyze and rate this resume and suggest how to improve it. "
    "Low ratings are fine when the resume is weak; the goal is to help the candidate improve.\n"
    "Be thorough and point out mistakes and areas for improvement.\n"
    "Take the target job into consideration when it is provided.\n"
    "The job title is: {job_title}\n"
    "The job description is: {job_description}\n"
    "In the skills section, list the skills the candidate lacks or needs to improve for this job.\n"
    "Provide the feedback using the following format:\n{response_format}\n"
    "Return the analysis as a JSON object only, without backticks and without any other text or comments."
)

FEEDBACK_SYSTEM = "You review resumes and answer with a single JSON object."

FEEDBACK_USER_TEMPLATE = "{instructions}\n\nRESUME TEXT:\n{resume_text}"

# --- STUDY PLAN PROMPTS ---
STUDY_PLAN_TEMPLATE = (
    "You are a career skills planning assistant. Generate a structured learning roadmap "
    "(in markdown format) based on the following skills that the user lacks or needs to improve:\n"
    "- Core skills\n"
    "- Recommended learning sequence\n"
    "- Recommended courses/materials\n"
    "- Estimated learning time\n"
    "- Competency for the position\n\n"
    "Current skill data:\n{skills_json}\n"
)

def get_prompt(template: str, **kwargs) -> str:
    return template.format(**kwargs)

def prepare_instructions(job_title: str, job_description: str) -> str:
    return get_prompt(
        FEEDBACK_INSTRUCTIONS_TEMPLATE,
        job_title=job_title or "Not provided",
        job_description=job_description or "Not provided",
        response_format=FEEDBACK_RESPONSE_FORMAT,
    )
