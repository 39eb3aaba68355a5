from pydantic import ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel
from typing import Any, List, Literal, Optional
import enum

from .question_schema import CamelModel, QuestionData, QuestionType


class BulkImportRow(QuestionData):
    """
    One row of an import batch.

    Older import tooling sends a single ``questionType``; it is wrapped into a
    one-element type set. A ``questionTypes`` list, when present, wins.
    """
    question_type: Optional[QuestionType] = None

    def to_question_data(self, department: Optional[str] = None) -> QuestionData:
        data = self.model_dump(exclude={"question_type"})
        if not data["question_types"] and self.question_type is not None:
            data["question_types"] = [self.question_type]
        if department and not data.get("department_id"):
            data["department_id"] = department
        return QuestionData(**data)


class BulkImportRequest(CamelModel):
    format: Literal["json", "csv"] = "json"
    # rows stay raw so one malformed row cannot reject the whole batch
    questions: List[Any] = Field(default_factory=list)
    department: Optional[str] = None
    overwrite_existing: bool = False


class ImportOutcome(str, enum.Enum):
    created = "created"
    updated = "updated"
    invalid = "invalid"
    duplicate = "duplicate"
    system_error = "system_error"


class BulkImportResultItem(CamelModel):
    index: int
    status: Literal["success", "error"]
    question_id: Optional[str] = None
    error: Optional[str] = None
    # not part of the wire format; tells "bad data" apart from "system failed"
    outcome: ImportOutcome = Field(..., exclude=True)


class BulkImportResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    results: List[BulkImportResultItem] = Field(default_factory=list)

    @computed_field
    @property
    def imported(self) -> int:
        return sum(1 for r in self.results if r.outcome == ImportOutcome.created)

    @computed_field
    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == "error")

    @computed_field
    @property
    def updated(self) -> int:
        return sum(1 for r in self.results if r.outcome == ImportOutcome.updated)

    @property
    def system_errors(self) -> int:
        return sum(1 for r in self.results if r.outcome == ImportOutcome.system_error)
