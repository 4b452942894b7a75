"""Handoff models exchanged with the downstream screening collaborators."""

import uuid
from typing import Optional

from pydantic import BaseModel, Field

from intake_flow.constants import DEFAULT_SCORING_WEIGHTS


class JobSpec(BaseModel):
    """Job description handed to the resume scorer."""

    id: uuid.UUID
    title: str
    company: str
    description: str = ""
    required_skills: list[str] = []
    preferred_skills: list[str] = []
    experience: Optional[str] = None
    location: Optional[str] = None
    job_type: Optional[str] = None
    hr_email: Optional[str] = None

    @property
    def display_title(self) -> str:
        return f"{self.title} at {self.company}"


class ScoringWeights(BaseModel):
    """Relative weight (0-100) of each scoring dimension."""

    skills: int = Field(default=DEFAULT_SCORING_WEIGHTS["skills"], ge=0, le=100)
    experience: int = Field(default=DEFAULT_SCORING_WEIGHTS["experience"], ge=0, le=100)
    education: int = Field(default=DEFAULT_SCORING_WEIGHTS["education"], ge=0, le=100)
    keywords: int = Field(default=DEFAULT_SCORING_WEIGHTS["keywords"], ge=0, le=100)


class ScreeningRequest(BaseModel):
    """Everything the screening side needs for one completed application."""

    session_id: uuid.UUID
    subject_id: str
    question_set_id: uuid.UUID
    job: Optional[JobSpec] = None
    attachment_path: str
    attachment_file_name: str
    responses: dict[str, str] = {}


class ScreeningScores(BaseModel):
    """Scorer output.  All scores are 0-100."""

    overall: float = Field(ge=0, le=100)
    skills_match: float = Field(ge=0, le=100)
    experience_match: float = Field(ge=0, le=100)
    education_match: float = Field(ge=0, le=100)
    keywords_match: float = Field(ge=0, le=100)
    matched_skills: list[str] = []
    missing_skills: list[str] = []
    experience_analysis: str = ""
    strengths_and_weaknesses: str = ""
    recommendations: list[str] = []
