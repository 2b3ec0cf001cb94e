"""Request and result models for the AI-backed recruiting domains."""

from typing import List, Literal, Optional

from pydantic import Field, field_validator, model_validator

from recruitq.models.job import CamelModel

Difficulty = Literal["easy", "medium", "hard"]


# ============================================================================
# CV Analysis
# ============================================================================


class CVAnalysisRequest(CamelModel):
    """Analyze one CV against job requirements."""

    cv_text: str = Field(min_length=1)
    job_requirements: str = Field(min_length=1)
    user_id: str = Field(min_length=1)

    @field_validator("cv_text", "job_requirements", "user_id")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class CVExperience(CamelModel):
    years: float = 0
    relevant_experience: List[str] = []


class CVEducation(CamelModel):
    degree: str = ""
    relevant_courses: List[str] = []


class CVAnalysisResult(CamelModel):
    score: int = Field(ge=0, le=100)
    strengths: List[str] = []
    weaknesses: List[str] = []
    recommendations: List[str] = []
    key_skills: List[str] = []
    experience: CVExperience = CVExperience()
    education: CVEducation = CVEducation()
    summary: str = ""
    match_percentage: int = Field(ge=0, le=100)


# ============================================================================
# Question Generation
# ============================================================================


class QuestionGenerationRequest(CamelModel):
    """Generate interview questions for a role."""

    job_title: str = Field(min_length=1)
    skills: List[str] = Field(min_length=1)
    count: int = Field(ge=1, le=50)
    difficulty: Difficulty = "medium"
    type: Literal["technical", "behavioral", "mixed"] = "mixed"
    user_id: Optional[str] = None


class Question(CamelModel):
    id: Optional[str] = None
    question: str
    type: Literal["technical", "behavioral"]
    difficulty: Difficulty
    expected_answer: Optional[str] = None
    scoring_criteria: List[str] = []


class QuestionSet(CamelModel):
    questions: List[Question]


# ============================================================================
# Interview Analysis
# ============================================================================


class InterviewAnswer(CamelModel):
    question_id: str
    answer: str
    duration: int = Field(0, ge=0, description="Answer duration in milliseconds")


class InterviewAnalysisRequest(CamelModel):
    """Score a completed interview session."""

    session_id: str = Field(min_length=1)
    questions: List[Question] = Field(min_length=1)
    answers: List[InterviewAnswer] = []
    user_id: Optional[str] = None

    @model_validator(mode="after")
    def answers_reference_questions(self) -> "InterviewAnalysisRequest":
        if any(q.id is None for q in self.questions):
            raise ValueError("every question needs an id")
        known = {q.id for q in self.questions}
        unknown = [a.question_id for a in self.answers if a.question_id not in known]
        if unknown:
            raise ValueError(f"answers reference unknown questions: {', '.join(unknown)}")
        return self


class QuestionScore(CamelModel):
    question_id: str
    score: int = Field(ge=0, le=100)
    feedback: str = ""
    strengths: List[str] = []
    improvements: List[str] = []


class InterviewAnalysisResult(CamelModel):
    overall_score: int = Field(ge=0, le=100)
    question_scores: List[QuestionScore] = []
    summary: str = ""
    recommendations: List[str] = []
    strengths: List[str] = []
    weaknesses: List[str] = []


# ============================================================================
# Job Requirements
# ============================================================================


class JobRequirementsRequest(CamelModel):
    """Draft the requirements of a job posting."""

    job_title: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    industry: Optional[str] = None
    seniority: Optional[str] = None
    company_size: Optional[str] = None
    location: Optional[str] = None


class SkillSet(CamelModel):
    technical: List[str] = []
    soft: List[str] = []
    certifications: List[str] = []


class ExperienceRequirements(CamelModel):
    minimum_years: float = 0
    preferred_years: float = 0
    relevant_experience: List[str] = []


class EducationRequirements(CamelModel):
    minimum: str = ""
    preferred: str = ""
    relevant_fields: List[str] = []


class Qualifications(CamelModel):
    essential: List[str] = []
    desired: List[str] = []


class SalaryRange(CamelModel):
    min: float = 0
    max: float = 0
    currency: str = "USD"


class JobRequirementsResult(CamelModel):
    job_title: str
    summary: str = ""
    key_responsibilities: List[str] = []
    required_skills: SkillSet = SkillSet()
    preferred_skills: SkillSet = SkillSet()
    experience: ExperienceRequirements = ExperienceRequirements()
    education: EducationRequirements = EducationRequirements()
    qualifications: Qualifications = Qualifications()
    benefits: List[str] = []
    work_environment: str = ""
    career_growth: str = ""
    salary_range: SalaryRange = SalaryRange()
    employment_type: str = ""
    location: str = ""
    remote_policy: str = ""
