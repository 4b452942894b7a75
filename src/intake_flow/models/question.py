"""Question and question-set models.

Questions are stored as plain dicts in the ``question_sets.questions`` JSONB
column; these models are the typed view the registry and engine work with.
Pydantic validates admin input (unique field keys, compilable custom
patterns, sane length bounds) before anything is persisted.
"""

import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from intake_db.models.enums import ValidationType


class QuestionValidation(BaseModel):
    """Validation rule attached to a question."""

    type: ValidationType = ValidationType.TEXT
    min_length: Optional[int] = Field(default=None, ge=0)
    max_length: Optional[int] = Field(default=None, ge=1)
    # Regular expression for ``custom`` questions (matched with re.search)
    pattern: Optional[str] = None

    @model_validator(mode="after")
    def _check_rule(self) -> "QuestionValidation":
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            raise ValueError("min_length cannot exceed max_length")
        if self.type == ValidationType.CUSTOM:
            if not self.pattern:
                raise ValueError("custom validation requires a pattern")
            try:
                re.compile(self.pattern)
            except re.error as exc:
                raise ValueError(f"invalid pattern: {exc}") from exc
        return self


class Question(BaseModel):
    """One prompt in a question set.

    ``step`` is optional on input; the registry always re-numbers steps to a
    contiguous 1..N before persisting.
    """

    step: Optional[int] = Field(default=None, ge=1)
    field_key: str = Field(pattern=r"^[A-Za-z][A-Za-z0-9_]*$", max_length=64)
    prompt: str = Field(min_length=1)
    validation: QuestionValidation = Field(default_factory=QuestionValidation)
    required: bool = True


def _check_unique_keys(questions: list[Question]) -> list[Question]:
    seen: set[str] = set()
    for q in questions:
        if q.field_key in seen:
            raise ValueError(f"duplicate field_key: {q.field_key}")
        seen.add(q.field_key)
    return questions


class QuestionSetSpec(BaseModel):
    """Input for creating a question set."""

    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    job_id: Optional[uuid.UUID] = None
    questions: list[Question] = Field(min_length=1)
    is_active: bool = True
    is_default: bool = False

    @field_validator("questions")
    @classmethod
    def _unique_field_keys(cls, v: list[Question]) -> list[Question]:
        return _check_unique_keys(v)


class QuestionSetPatch(BaseModel):
    """Partial update for a question set.  Unset fields are left unchanged."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    job_id: Optional[uuid.UUID] = None
    questions: Optional[list[Question]] = Field(default=None, min_length=1)
    is_active: Optional[bool] = None
    is_default: Optional[bool] = None

    @field_validator("questions")
    @classmethod
    def _unique_field_keys(cls, v: Optional[list[Question]]) -> Optional[list[Question]]:
        if v is None:
            return v
        return _check_unique_keys(v)


class QuestionSetInfo(BaseModel):
    """Public view of a stored question set."""

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    job_id: Optional[uuid.UUID] = None
    questions: list[Question]
    is_active: bool
    is_default: bool
    owner: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def question_at(self, step: int) -> Question | None:
        """Return the question with 1-based ``step``, or None if out of range."""
        if 1 <= step <= len(self.questions):
            return self.questions[step - 1]
        return None

    @property
    def field_keys(self) -> set[str]:
        return {q.field_key for q in self.questions}
