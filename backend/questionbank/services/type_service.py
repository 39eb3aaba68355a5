from functools import reduce
from typing import Dict, Iterable, List, NamedTuple, Tuple

from ..exceptions import DuplicateTypeError, EmptyTypeSetError, LastTypeRemovalError
from ..schemas.question_schema import QuestionType


class TypeCapabilities(NamedTuple):
    """Which type-specific substructures a question needs."""
    needs_options: bool = False
    needs_matching_pairs: bool = False
    needs_flashcard: bool = False
    needs_correct_answer: bool = False
    needs_accepted_answers: bool = False
    needs_sample_answer: bool = False
    needs_blanks: bool = False

    def union(self, other: "TypeCapabilities") -> "TypeCapabilities":
        return TypeCapabilities(*(mine or theirs for mine, theirs in zip(self, other)))

    def to_dict(self) -> Dict[str, bool]:
        # camelCase keys, same as the rest of the wire format
        return {
            "needsOptions": self.needs_options,
            "needsMatchingPairs": self.needs_matching_pairs,
            "needsFlashcard": self.needs_flashcard,
            "needsCorrectAnswer": self.needs_correct_answer,
            "needsAcceptedAnswers": self.needs_accepted_answers,
            "needsSampleAnswer": self.needs_sample_answer,
            "needsBlanks": self.needs_blanks,
        }


class QuestionTypeInfo(NamedTuple):
    label: str
    code: str
    description: str
    capabilities: TypeCapabilities


# The one place that knows what each question type requires.
QUESTION_TYPE_TABLE: Dict[QuestionType, QuestionTypeInfo] = {
    QuestionType.multiple_choice: QuestionTypeInfo(
        "Multiple Choice", "MC", "Single correct answer from options",
        TypeCapabilities(needs_options=True),
    ),
    QuestionType.multiple_select: QuestionTypeInfo(
        "Multiple Select", "MS", "Multiple correct answers from options",
        TypeCapabilities(needs_options=True),
    ),
    QuestionType.true_false: QuestionTypeInfo(
        "True/False", "TF", "Binary true or false answer",
        TypeCapabilities(needs_options=True, needs_correct_answer=True),
    ),
    QuestionType.short_answer: QuestionTypeInfo(
        "Short Answer", "SA", "Brief text response with auto-grading",
        TypeCapabilities(needs_accepted_answers=True),
    ),
    QuestionType.long_answer: QuestionTypeInfo(
        "Long Answer", "LA", "Extended response requiring manual grading",
        TypeCapabilities(needs_sample_answer=True),
    ),
    QuestionType.matching: QuestionTypeInfo(
        "Matching", "MA", "Match items from two columns",
        TypeCapabilities(needs_matching_pairs=True),
    ),
    QuestionType.flashcard: QuestionTypeInfo(
        "Flashcard", "FC", "Front/back study card",
        TypeCapabilities(needs_flashcard=True),
    ),
    QuestionType.fill_in_blank: QuestionTypeInfo(
        "Fill in the Blank", "FB", "Complete the sentence",
        TypeCapabilities(needs_blanks=True),
    ),
}

OPTION_BASED_TYPES = frozenset(
    t for t, info in QUESTION_TYPE_TABLE.items() if info.capabilities.needs_options
)


def capabilities_for(question_type) -> TypeCapabilities:
    return QUESTION_TYPE_TABLE[QuestionType(question_type)].capabilities


def resolve_requirements(types: Iterable) -> TypeCapabilities:
    """
    Union the capability flags of every type in ``types``.

    The result does not depend on order. An empty collection raises
    EmptyTypeSetError.
    """
    caps = [capabilities_for(t) for t in types]
    if not caps:
        raise EmptyTypeSetError()
    return reduce(TypeCapabilities.union, caps)


class TypeSet:
    """
    Ordered, duplicate-free set of question types with its requirement record.

    Order is kept for display (the first type is the primary one); equality
    and requirements ignore it. TypeSets are immutable: editing helpers
    return a new instance.
    """

    __slots__ = ("_types", "requirements")

    def __init__(self, types: Iterable):
        ordered: List[QuestionType] = []
        for t in types:
            qtype = QuestionType(t)
            if qtype in ordered:
                raise DuplicateTypeError(qtype.value)
            ordered.append(qtype)
        self._types: Tuple[QuestionType, ...] = tuple(ordered)
        self.requirements = resolve_requirements(self._types)

    @classmethod
    def from_legacy(cls, question_type) -> "TypeSet":
        return cls([question_type])

    def __iter__(self):
        return iter(self._types)

    def __len__(self):
        return len(self._types)

    def __contains__(self, item):
        try:
            return QuestionType(item) in self._types
        except ValueError:
            return False

    def __eq__(self, other):
        if not isinstance(other, TypeSet):
            return NotImplemented
        return frozenset(self._types) == frozenset(other._types)

    def __hash__(self):
        return hash(frozenset(self._types))

    def __repr__(self):
        return f"TypeSet({[t.value for t in self._types]})"

    @property
    def types(self) -> List[QuestionType]:
        return list(self._types)

    @property
    def primary_type(self) -> QuestionType:
        return self._types[0]

    @property
    def has_option_type(self) -> bool:
        return self.requirements.needs_options

    @property
    def is_multi_select(self) -> bool:
        return QuestionType.multiple_select in self._types

    @property
    def has_choice_type(self) -> bool:
        """An option type other than true_false is selected."""
        return any(t in OPTION_BASED_TYPES and t != QuestionType.true_false for t in self._types)

    @property
    def allows_manual_grading(self) -> bool:
        return QuestionType.long_answer in self._types

    def labels(self) -> List[str]:
        return [QUESTION_TYPE_TABLE[t].label for t in self._types]

    def codes(self) -> List[str]:
        return [QUESTION_TYPE_TABLE[t].code for t in self._types]

    def with_type(self, question_type) -> "TypeSet":
        if question_type in self:
            return self
        return TypeSet(self._types + (QuestionType(question_type),))

    def without_type(self, question_type) -> "TypeSet":
        qtype = QuestionType(question_type)
        if qtype not in self._types:
            return self
        if len(self._types) == 1:
            raise LastTypeRemovalError(qtype.value)
        return TypeSet(t for t in self._types if t != qtype)

    def toggle(self, question_type) -> "TypeSet":
        if question_type in self:
            return self.without_type(question_type)
        return self.with_type(question_type)


def describe_question_types() -> List[dict]:
    return [
        {
            "type": qtype,
            "label": info.label,
            "code": info.code,
            "description": info.description,
            "capabilities": info.capabilities.to_dict(),
        }
        for qtype, info in QUESTION_TYPE_TABLE.items()
    ]
