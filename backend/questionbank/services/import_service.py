"""
Bulk import reconciliation.

Every row is handled on its own: it is parsed, validated and then created,
updated or rejected depending on whether a question with the same text
already exists and on the overwrite policy. One bad row never stops the
batch; the response has exactly one result per input row, in input order,
and the counters are computed from those results.
"""
import logging
from typing import Dict, List, Optional

from pydantic import ValidationError

from ..schemas.import_schema import BulkImportResponse, BulkImportResultItem, BulkImportRow, ImportOutcome
from .question_store import QuestionStore
from .validation_service import validate_question

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "Duplicate question text found"
SYSTEM_ERROR_MESSAGE = "Failed to save question due to a system error"


def _success(index: int, question_id: str, outcome: ImportOutcome) -> BulkImportResultItem:
    return BulkImportResultItem(index=index, status="success", question_id=question_id, outcome=outcome)


def _error(index: int, message: str, outcome: ImportOutcome) -> BulkImportResultItem:
    return BulkImportResultItem(index=index, status="error", error=message, outcome=outcome)


def _first_error_message(e: ValidationError) -> str:
    err = e.errors()[0]
    location = ".".join(str(part) for part in err.get("loc", ()))
    return f"{location}: {err['msg']}" if location else err["msg"]


async def _reconcile_row(
    index: int,
    raw,
    store: QuestionStore,
    overwrite_existing: bool,
    department: Optional[str],
    seen: Dict[str, str],
) -> BulkImportResultItem:
    if not isinstance(raw, dict):
        return _error(index, "Row must be an object", ImportOutcome.invalid)
    try:
        row = BulkImportRow.model_validate(raw)
    except ValidationError as e:
        return _error(index, _first_error_message(e), ImportOutcome.invalid)

    result = validate_question(row.to_question_data(department))
    if not result.is_valid:
        return _error(index, result.violations[0].message, ImportOutcome.invalid)

    question = result.question
    text = question.question_text
    try:
        # rows earlier in this batch count as existing questions too
        existing_id = seen.get(text)
        if existing_id is None:
            existing_id = await store.find_existing(text)

        if existing_id is None:
            stored = await store.create(question)
            seen[text] = stored.id
            return _success(index, stored.id, ImportOutcome.created)

        if overwrite_existing:
            stored = await store.update(existing_id, question)
            seen[text] = stored.id
            return _success(index, stored.id, ImportOutcome.updated)
    except Exception:
        # the store is an external collaborator; whatever it raises stays a row-level failure
        logger.exception("Import row %s failed in the question store", index)
        return _error(index, SYSTEM_ERROR_MESSAGE, ImportOutcome.system_error)

    logger.info("Import row %s skipped: '%s' already exists", index, text[:80])
    return _error(index, DUPLICATE_MESSAGE, ImportOutcome.duplicate)


async def reconcile_import(
    rows: List,
    store: QuestionStore,
    overwrite_existing: bool = False,
    department: Optional[str] = None,
) -> BulkImportResponse:
    """
    Import ``rows`` into ``store``.

    Rows are processed one after another so that two new rows with the same
    text are never both created.
    """
    seen: Dict[str, str] = {}
    results = []
    for index, raw in enumerate(rows):
        results.append(await _reconcile_row(index, raw, store, overwrite_existing, department, seen))

    response = BulkImportResponse(results=results)
    logger.info(
        "Bulk import finished: %s rows, %s imported, %s updated, %s failed (%s system errors)",
        len(rows), response.imported, response.updated, response.failed, response.system_errors,
    )
    return response
