"""Shape of the JSON object the AI endpoint must return for a note.

Every group is optional; a present group that does not match its shape
fails the whole reply.
"""

from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AIFlashcard(BaseModel):
    model_config = ConfigDict(extra="ignore")

    question: Annotated[str, Field(min_length=1)]
    answer: Annotated[str, Field(min_length=1)]
    difficulty: Literal["easy", "medium", "hard"] = "medium"

    @field_validator("difficulty", mode="before")
    @classmethod
    def _default_difficulty(cls, v):
        return v or "medium"


class AIQuizQuestion(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    question: Annotated[str, Field(min_length=1)]
    options: Annotated[list[str], Field(min_length=4, max_length=4)]
    correct_answer: int = Field(alias="correctAnswer")
    explanation: str = ""

    @field_validator("explanation", mode="before")
    @classmethod
    def _default_explanation(cls, v):
        return v or ""

    @model_validator(mode="after")
    def _check_answer_index(self):
        if not 0 <= self.correct_answer < len(self.options):
            raise ValueError("correctAnswer out of range")
        return self


class AIQuiz(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    questions: list[AIQuizQuestion] = Field(default_factory=list)


class AISummary(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    content: Annotated[str, Field(min_length=1)]
    key_points: list[str] = Field(default_factory=list, alias="keyPoints")

    @field_validator("key_points", mode="before")
    @classmethod
    def _default_key_points(cls, v):
        return v or []


class AIStudyPack(BaseModel):
    model_config = ConfigDict(extra="ignore")

    flashcards: Optional[list[AIFlashcard]] = None
    quiz: Optional[AIQuiz] = None
    summary: Optional[AISummary] = None
