from typing import Any, List, Optional, Tuple, Union

from ..schemas.question_schema import QuestionData, QuestionType

CanonicalAnswer = Optional[Union[str, List[str]]]


def _collapse(values: List[str], multi_select: bool) -> CanonicalAnswer:
    if not values:
        return None
    if len(values) == 1 and not multi_select:
        return values[0]
    return values


def _supplied_answer(question: Any):
    # only editor drafts carry a hand-entered answer; accepted questions never store one
    if isinstance(question, QuestionData):
        return question.correct_answer
    return None


def derive_correct_answer(question: Any) -> CanonicalAnswer:
    """
    Compute the canonical correct answer from the question's substructures.

    First match wins:
    - options: texts of the options marked correct (a single one collapses to
      a plain string unless multiple_select is selected)
    - a scalar answer supplied directly on a draft (true/false path)
    - accepted answers, as a list
    - blanks: the first accepted answer of each blank
    - otherwise None: manually graded, nothing stored

    Pure: call it again after any edit and it reflects the current state.
    """
    types = list(getattr(question, "question_types", None) or [])
    multi_select = QuestionType.multiple_select in types

    options = getattr(question, "options", None)
    if options:
        correct = [opt.text for opt in options if opt.is_correct]
        return _collapse(correct, multi_select)

    supplied = _supplied_answer(question)
    if isinstance(supplied, bool):
        return "True" if supplied else "False"
    if supplied not in (None, "", []):
        return supplied

    accepted = [a for a in (getattr(question, "accepted_answers", None) or []) if a]
    if accepted:
        return accepted

    blanks = getattr(question, "blanks", None) or []
    firsts = [b.accepted_answers[0] for b in sorted(blanks, key=lambda b: b.position) if b.accepted_answers]
    if firsts:
        return _collapse(firsts, multi_select=False)

    return None


def primary_answer(question: Any) -> Optional[str]:
    """The answer shown first, e.g. on the back of a flashcard."""
    answer = derive_correct_answer(question)
    if isinstance(answer, list):
        return answer[0] if answer else None
    return answer


def flashcard_faces(question: Any) -> Tuple[str, Optional[str]]:
    # the question text is the front, the primary answer the back
    return question.question_text, primary_answer(question)
