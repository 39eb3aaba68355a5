from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .schemas.question_schema import Violation


class QuestionBankError(Exception):
    """Base class for every error raised by the question bank core."""


class EmptyTypeSetError(QuestionBankError):
    def __init__(self, message: str = "At least one question type is required"):
        super().__init__(message)


class DuplicateTypeError(QuestionBankError):
    def __init__(self, question_type: str):
        self.question_type = question_type
        super().__init__(f"Question type '{question_type}' is selected more than once")


class LastTypeRemovalError(QuestionBankError):
    def __init__(self, question_type: str):
        self.question_type = question_type
        super().__init__(f"Cannot remove '{question_type}': a question needs at least one type")


class QuestionValidationError(QuestionBankError):
    """
    Raised when a payload fails validation.

    Carries every violation found, not only the first one, so callers can
    show all of them at once.
    """

    def __init__(self, violations: List["Violation"]):
        self.violations = list(violations)
        first = self.violations[0].message if self.violations else "Invalid question"
        super().__init__(first)

    @property
    def first_message(self) -> Optional[str]:
        return self.violations[0].message if self.violations else None

    def to_dict(self) -> dict:
        return {
            "detail": str(self),
            "violations": [v.model_dump() for v in self.violations],
        }


class QuestionNotFoundError(QuestionBankError):
    def __init__(self, question_id):
        self.question_id = question_id
        super().__init__(f"Question {question_id} not found.")


class ImportFileError(QuestionBankError):
    pass


class QuestionStoreError(QuestionBankError):
    """The storage collaborator failed (driver error, timeout, ...)."""
