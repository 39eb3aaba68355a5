"""
Question validation.

``validate_question`` takes a candidate payload, resolves the requirement
record of its type set and returns either an accepted ``Question`` or every
field violation it could find. Apart from the type-set check, which has to
pass before anything else can be evaluated, the rules are independent of
each other.
"""
import math
from typing import Dict, List, NamedTuple, Optional

from ..exceptions import DuplicateTypeError, EmptyTypeSetError, QuestionValidationError
from ..schemas.question_schema import (
    AnswerOption,
    BlankDefinition,
    FlashcardData,
    MatchingPair,
    Question,
    QuestionData,
    QuestionType,
    Violation,
)
from .type_service import TypeSet

QUESTION_TEXT_MAX_LENGTH = 2000
EXPLANATION_MAX_LENGTH = 1000
OPTION_TEXT_MAX_LENGTH = 500
MIN_POINTS = 0.1

TRUE_FALSE_TEXTS = ("True", "False")

# Order in which violations are reported.
FIELD_ORDER = (
    "questionTypes",
    "questionText",
    "points",
    "explanation",
    "options",
    "correctAnswer",
    "acceptedAnswers",
    "matchingPairs",
    "flashcardData",
    "blanks",
)


class ValidationResult(NamedTuple):
    question: Optional[Question]
    violations: List[Violation]

    @property
    def is_valid(self) -> bool:
        return not self.violations


def _strip_all(values) -> List[str]:
    return [v.strip() for v in values or [] if v is not None and v.strip()]


def _unique(values: List[str]) -> List[str]:
    seen = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return seen


def true_false_value(seed) -> Optional[str]:
    """Map a loose true/false answer (bool, "true", ["False"]) to "True"/"False"."""
    if isinstance(seed, bool):
        return "True" if seed else "False"
    if isinstance(seed, list) and len(seed) == 1:
        return true_false_value(seed[0])
    if isinstance(seed, str):
        key = seed.strip().lower()
        for text in TRUE_FALSE_TEXTS:
            if text.lower() == key:
                return text
    return None


def true_false_options(options: Optional[List[AnswerOption]], seed=None) -> List[AnswerOption]:
    """
    The fixed True/False option pair.

    Correct flags already set on entries named True/False are kept; otherwise
    ``seed`` decides which one is correct.
    """
    flags: Dict[str, bool] = {}
    for opt in options or []:
        answer = true_false_value(opt.text)
        if answer is not None:
            flags[answer] = flags.get(answer, False) or opt.is_correct
    if not any(flags.values()):
        answer = true_false_value(seed)
        flags = {answer: True} if answer else {}
    return [AnswerOption(text=text, is_correct=flags.get(text, False)) for text in TRUE_FALSE_TEXTS]


def _mark_options_from_seed(options: List[AnswerOption], seed) -> List[AnswerOption]:
    if seed is None or isinstance(seed, bool) or any(o.is_correct for o in options):
        return options
    wanted = {s.strip() for s in ([seed] if isinstance(seed, str) else seed)}
    return [AnswerOption(text=o.text, is_correct=o.text in wanted) for o in options]


def _seed_strings(seed) -> List[str]:
    if isinstance(seed, str):
        return _strip_all([seed])
    if isinstance(seed, list):
        return _strip_all(seed)
    return []


def normalize_payload(payload: QuestionData, type_set: TypeSet) -> dict:
    """
    Bring a payload into canonical shape for its type set.

    Substructures of types that are not selected are dropped, and a legacy
    ``correctAnswer`` is moved into whichever substructure holds the answer
    for the selected types. The returned dict uses Question attribute names.
    """
    req = type_set.requirements
    seed = payload.correct_answer
    seed_used = False

    options = None
    if req.needs_options:
        options = [AnswerOption(text=o.text.strip(), is_correct=o.is_correct) for o in payload.options or []]
        if QuestionType.true_false in type_set:
            options = true_false_options(options, seed)
        else:
            options = _mark_options_from_seed(options, seed)
        seed_used = True

    accepted = None
    if req.needs_accepted_answers or req.needs_flashcard:
        accepted = _strip_all(payload.accepted_answers)
        if not accepted and not seed_used:
            accepted = _seed_strings(seed)
            seed_used = bool(accepted)

    blanks = None
    if req.needs_blanks:
        blanks = [
            BlankDefinition(position=b.position, accepted_answers=_strip_all(b.accepted_answers))
            for b in payload.blanks or []
        ]
        if not blanks and not seed_used:
            blanks = [
                BlankDefinition(position=i, accepted_answers=[answer])
                for i, answer in enumerate(_seed_strings(seed))
            ]
            seed_used = bool(blanks)

    sample = None
    if req.needs_sample_answer:
        sample = (payload.sample_answer or "").strip() or None
        if sample is None and not seed_used and isinstance(seed, str):
            sample = seed.strip() or None

    pairs = distractors = None
    if req.needs_matching_pairs:
        pairs = [MatchingPair(left=p.left.strip(), right=p.right.strip()) for p in payload.matching_pairs or []]
        distractors = _unique(_strip_all(payload.distractors))

    flashcard = None
    if req.needs_flashcard:
        source = payload.flashcard_data or FlashcardData()
        flashcard = FlashcardData(
            prompts=_strip_all(source.prompts),
            front_media=source.front_media or None,
            back_media=source.back_media or None,
        )

    explanation = (payload.explanation or "").strip() or None

    return {
        "department_id": payload.department_id,
        "bank_id": payload.bank_id,
        "question_types": type_set.types,
        "question_text": (payload.question_text or "").strip(),
        "difficulty": payload.difficulty,
        "tags": _unique(_strip_all(payload.tags)),
        "points": payload.points,
        "explanation": explanation,
        "options": options,
        "accepted_answers": accepted,
        "sample_answer": sample,
        "matching_pairs": pairs,
        "distractors": distractors,
        "flashcard_data": flashcard,
        "blanks": blanks,
    }


def _check_options(data: dict, type_set: TypeSet) -> Optional[str]:
    options = data["options"]
    if len(options) < 2:
        return "At least 2 options are required"
    if any(not opt.text for opt in options):
        return "All options must have text"
    if any(len(opt.text) > OPTION_TEXT_MAX_LENGTH for opt in options):
        return f"Option text must be {OPTION_TEXT_MAX_LENGTH} characters or less"
    correct = sum(1 for opt in options if opt.is_correct)
    if correct == 0:
        return "At least one option must be marked as correct"
    if type_set.is_multi_select and correct < 2:
        return "Multiple select requires at least 2 correct answers"
    return None


def _check_true_false_answer(data: dict, seed, type_set: TypeSet) -> Optional[str]:
    if seed is not None and not isinstance(seed, list) and true_false_value(seed) is None:
        return "Correct answer must be True or False"
    correct = [opt for opt in data["options"] if opt.is_correct]
    if not correct:
        return "Correct answer is required"
    if len(correct) > 1 and not type_set.is_multi_select:
        return "Correct answer must be either True or False, not both"
    return None


def _check_matching(data: dict) -> Optional[str]:
    pairs = data["matching_pairs"]
    if len(pairs) < 2:
        return "Matching requires at least 2 pairs"
    if any(not p.left or not p.right for p in pairs):
        return "All matching pairs must have both a left and a right side"
    return None


def _check_blanks(data: dict) -> Optional[str]:
    blanks = data["blanks"]
    if not blanks:
        return "At least one blank is required"
    if any(not b.accepted_answers for b in blanks):
        return "Each blank must have at least one accepted answer"
    positions = [b.position for b in blanks]
    if len(set(positions)) != len(positions):
        return "Blank positions must be unique"
    return None


def collect_violations(data: dict, seed, type_set: TypeSet) -> List[Violation]:
    req = type_set.requirements
    errors: Dict[str, str] = {}

    text = data["question_text"]
    if not text:
        errors["questionText"] = "Question text is required"
    elif len(text) > QUESTION_TEXT_MAX_LENGTH:
        errors["questionText"] = f"Question text must be {QUESTION_TEXT_MAX_LENGTH} characters or less"

    points = data["points"]
    if points is None or not math.isfinite(points) or points < MIN_POINTS:
        errors["points"] = f"Points must be at least {MIN_POINTS}"

    if data["explanation"] and len(data["explanation"]) > EXPLANATION_MAX_LENGTH:
        errors["explanation"] = f"Explanation must be {EXPLANATION_MAX_LENGTH} characters or less"

    if req.needs_options:
        message = _check_options(data, type_set)
        if message:
            errors["options"] = message

    if req.needs_correct_answer and not type_set.has_choice_type:
        message = _check_true_false_answer(data, seed, type_set)
        if message:
            errors["correctAnswer"] = message

    if req.needs_accepted_answers and not type_set.allows_manual_grading:
        if not data["accepted_answers"]:
            errors["acceptedAnswers"] = "Correct answer is required"

    if req.needs_matching_pairs:
        message = _check_matching(data)
        if message:
            errors["matchingPairs"] = message

    if req.needs_flashcard:
        has_correct_option = any(opt.is_correct for opt in data["options"] or [])
        if not has_correct_option and not data["accepted_answers"]:
            errors["flashcardData"] = "Flashcard requires at least one correct answer for the back of the card"

    if req.needs_blanks:
        message = _check_blanks(data)
        if message:
            errors["blanks"] = message

    return [Violation(field=field, message=errors[field]) for field in FIELD_ORDER if field in errors]


def validate_question(payload) -> ValidationResult:
    """Validate and normalize a candidate question payload (or an accepted Question)."""
    if isinstance(payload, Question):
        payload = payload.to_payload()
    try:
        type_set = TypeSet(payload.question_types)
    except (EmptyTypeSetError, DuplicateTypeError) as e:
        return ValidationResult(None, [Violation(field="questionTypes", message=str(e))])

    data = normalize_payload(payload, type_set)
    violations = collect_violations(data, payload.correct_answer, type_set)
    if violations:
        return ValidationResult(None, violations)
    return ValidationResult(Question(**data), [])


def validate_or_raise(payload: QuestionData) -> Question:
    result = validate_question(payload)
    if not result.is_valid:
        raise QuestionValidationError(result.violations)
    return result.question
