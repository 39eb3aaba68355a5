from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional, Union
from datetime import datetime
import enum


class QuestionType(str, enum.Enum):
    """Enums for valid question types."""
    multiple_choice = "multiple_choice"
    multiple_select = "multiple_select"
    true_false = "true_false"
    short_answer = "short_answer"
    long_answer = "long_answer"
    matching = "matching"
    flashcard = "flashcard"
    fill_in_blank = "fill_in_blank"

    @classmethod
    def _missing_(cls, value):
        # legacy names and loose casing from older import tooling
        if isinstance(value, str):
            key = value.strip().lower()
            key = LEGACY_TYPE_ALIASES.get(key, key)
            for member in cls:
                if member.value == key:
                    return member
        return None


LEGACY_TYPE_ALIASES = {
    "essay": "long_answer",
    "fill_blank": "fill_in_blank",
}


class Difficulty(str, enum.Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().lower():
                    return member
        return None


# Scalar or list seed for the derived correct answer (legacy payloads).
AnswerSeed = Union[bool, str, List[str]]


class CamelModel(BaseModel):
    """Wire names are camelCase; Python attributes stay snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnswerOption(CamelModel):
    text: str = ""
    is_correct: bool = False

    @field_validator("text", mode="before")
    def coerce_text(cls, v):
        # spreadsheets hand numbers back as ints/floats
        return "" if v is None else str(v)


class MatchingPair(CamelModel):
    left: str = ""
    right: str = ""


class FlashcardData(CamelModel):
    prompts: List[str] = Field(default_factory=list)
    front_media: Optional[str] = None
    back_media: Optional[str] = None


class BlankDefinition(CamelModel):
    position: int = Field(..., ge=0, description="Index of the blank inside the question text.")
    accepted_answers: List[str] = Field(default_factory=list)


class QuestionData(CamelModel):
    """
    Schema for a candidate question payload (create requests and editor drafts).

    Only the *shape* is checked here. Content rules (lengths, required
    substructures for the selected types, ...) are evaluated together by
    ``validation_service.validate_question`` so every violation can be
    reported at once.
    """
    question_types: List[QuestionType] = Field(default_factory=list,
                                               description="Presentation types this question supports.")
    question_text: str = Field("", description="The main text of the question.")
    difficulty: Difficulty = Difficulty.medium
    tags: List[str] = Field(default_factory=list, description="Keywords used for categorization.")
    points: float = Field(1.0, description="Points awarded for a correct answer.")
    explanation: Optional[str] = None

    options: Optional[List[AnswerOption]] = None
    correct_answer: Optional[AnswerSeed] = None
    accepted_answers: Optional[List[str]] = None
    sample_answer: Optional[str] = None
    matching_pairs: Optional[List[MatchingPair]] = None
    distractors: Optional[List[str]] = None
    flashcard_data: Optional[FlashcardData] = None
    blanks: Optional[List[BlankDefinition]] = None

    bank_id: Optional[str] = None
    department_id: Optional[str] = None

    @field_validator("question_types", mode="before")
    def wrap_single_type(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("correct_answer", mode="before")
    def coerce_correct_answer(cls, v):
        if isinstance(v, bool) or v is None:
            return v
        if isinstance(v, (int, float)):
            return str(v)
        if isinstance(v, (list, tuple)):
            return [str(item) for item in v]
        return v

    @field_validator("tags", "accepted_answers", "distractors", mode="before")
    def coerce_string_list(cls, v):
        if v is None:
            return v
        if isinstance(v, str):
            return [part for part in v.split(",")]
        return [str(item) for item in v if item is not None]


class QuestionUpdate(QuestionData):
    """Partial update: only the fields actually sent are merged."""


class Question(CamelModel):
    """
    A normalized, accepted question.

    Instances are only produced by the validator, so they always satisfy the
    type-set invariants. ``correct_answer`` is a projection of the current
    substructures and cannot be set.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True,
                              from_attributes=True)

    id: Optional[str] = None
    department_id: Optional[str] = None
    bank_id: Optional[str] = None

    question_types: List[QuestionType] = Field(..., min_length=1)
    question_text: str
    difficulty: Difficulty = Difficulty.medium
    tags: List[str] = Field(default_factory=list)
    points: float = Field(1.0, ge=0.1)
    explanation: Optional[str] = None

    options: Optional[List[AnswerOption]] = None
    accepted_answers: Optional[List[str]] = None
    sample_answer: Optional[str] = None
    matching_pairs: Optional[List[MatchingPair]] = None
    distractors: Optional[List[str]] = None
    flashcard_data: Optional[FlashcardData] = None
    blanks: Optional[List[BlankDefinition]] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field(alias="correctAnswer")
    @property
    def correct_answer(self) -> Optional[Union[str, List[str]]]:
        from ..services.answer_service import derive_correct_answer
        return derive_correct_answer(self)

    def to_payload(self) -> QuestionData:
        """Turn the question back into an editable payload."""
        data = self.model_dump(exclude={"id", "created_at", "updated_at", "correct_answer"})
        return QuestionData(**data)


class Violation(CamelModel):
    field: str
    message: str


class QuestionTypeInfoRead(CamelModel):
    type: QuestionType
    label: str
    code: str
    description: str
    capabilities: dict
