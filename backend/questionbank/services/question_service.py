import logging
from typing import Optional

from ..exceptions import QuestionNotFoundError
from ..schemas.question_schema import AnswerOption, Question, QuestionData, QuestionType, QuestionUpdate
from .question_store import QuestionStore
from .type_service import TypeSet
from .validation_service import true_false_options, validate_or_raise

logger = logging.getLogger(__name__)


async def create_question(payload: QuestionData, store: QuestionStore,
                          department_id: Optional[str] = None) -> Question:
    # validate everything first, nothing is written for an invalid payload
    question = validate_or_raise(payload)
    if department_id and not question.department_id:
        question = question.model_copy(update={"department_id": department_id})
    stored = await store.create(question)
    logger.info("Created question %s [%s]", stored.id, ", ".join(t.value for t in stored.question_types))
    return stored


def merge_update(existing: Question, patch: QuestionUpdate) -> QuestionData:
    """
    Apply a partial update on top of an existing question.

    A new ``correctAnswer`` without new options/accepted answers re-seeds the
    answer instead of being ignored in favour of the stored flags.
    """
    changes = patch.model_dump(exclude_unset=True)
    merged = existing.to_payload().model_dump()
    if "correct_answer" in changes:
        if "options" not in changes and merged.get("options"):
            merged["options"] = [{**opt, "is_correct": False} for opt in merged["options"]]
        if "accepted_answers" not in changes:
            merged["accepted_answers"] = None
    merged.update(changes)
    return QuestionData(**merged)


async def update_question(question_id: str, patch: QuestionUpdate, store: QuestionStore) -> Question:
    existing = await store.get(question_id)
    if existing is None:
        raise QuestionNotFoundError(question_id)
    # the merged whole is validated, not just the delta
    question = validate_or_raise(merge_update(existing, patch))
    stored = await store.update(question_id, question)
    logger.info("Updated question %s", question_id)
    return stored


async def get_question(question_id: str, store: QuestionStore) -> Question:
    question = await store.get(question_id)
    if question is None:
        raise QuestionNotFoundError(question_id)
    return question


# Draft editing helpers. Drafts may be incomplete; they are validated on save.

def _type_set_with(draft: QuestionData, question_type) -> TypeSet:
    if not draft.question_types:
        return TypeSet([question_type])
    return TypeSet(draft.question_types).with_type(question_type)


def add_question_type(draft: QuestionData, question_type) -> QuestionData:
    type_set = _type_set_with(draft, question_type)
    update = {"question_types": type_set.types}
    if QuestionType.true_false in type_set:
        update["options"] = true_false_options(draft.options, draft.correct_answer)
    return draft.model_copy(update=update)


def remove_question_type(draft: QuestionData, question_type) -> QuestionData:
    # options stay as they are; removing true_false does not bring back older option text
    type_set = TypeSet(draft.question_types).without_type(question_type)
    return draft.model_copy(update={"question_types": type_set.types})


def toggle_question_type(draft: QuestionData, question_type) -> QuestionData:
    if QuestionType(question_type) in draft.question_types:
        return remove_question_type(draft, question_type)
    return add_question_type(draft, question_type)


def add_option(draft: QuestionData) -> QuestionData:
    if QuestionType.true_false in draft.question_types:
        return draft
    options = list(draft.options or []) + [AnswerOption()]
    return draft.model_copy(update={"options": options})


def remove_option(draft: QuestionData, index: int) -> QuestionData:
    options = list(draft.options or [])
    if QuestionType.true_false in draft.question_types or len(options) <= 2:
        return draft
    del options[index]
    return draft.model_copy(update={"options": options})


def set_option(draft: QuestionData, index: int, text: Optional[str] = None,
               is_correct: Optional[bool] = None) -> QuestionData:
    """
    Edit one option of a draft.

    True/False option texts are fixed. Marking an option correct unchecks the
    others unless multiple_select is selected.
    """
    single_select = QuestionType.multiple_select not in draft.question_types
    locked_text = QuestionType.true_false in draft.question_types
    options = []
    for i, opt in enumerate(draft.options or []):
        if i == index:
            opt = AnswerOption(
                text=opt.text if text is None or locked_text else text,
                is_correct=opt.is_correct if is_correct is None else is_correct,
            )
        elif is_correct and single_select:
            opt = AnswerOption(text=opt.text, is_correct=False)
        options.append(opt)
    return draft.model_copy(update={"options": options})
