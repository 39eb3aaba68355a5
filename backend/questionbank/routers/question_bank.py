from fastapi import APIRouter, UploadFile, File, Depends, HTTPException, status
import logging

from ..config import BULK_IMPORT_MAX_ROWS
from ..dependencies import get_question_store
from ..exceptions import ImportFileError, QuestionNotFoundError
from ..schemas.import_schema import BulkImportRequest
from ..schemas.question_schema import QuestionData, QuestionUpdate
from ..services.file_service import format_for_filename, import_template, parse_import_file, REQUIRED_COLUMNS
from ..services.import_service import reconcile_import
from ..services.question_service import create_question, get_question, update_question
from ..services.question_store import QuestionStore
from ..services.type_service import describe_question_types

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/questionbank", tags=["Question Bank"])


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


@router.get("/question-types")
async def list_question_types():
    return describe_question_types()


@router.post("/questions", status_code=status.HTTP_201_CREATED)
async def create_question_route(payload: QuestionData, store: QuestionStore = Depends(get_question_store)):
    # QuestionValidationError is turned into a 422 by the app-level handler
    question = await create_question(payload, store)
    return _dump(question)


@router.patch("/questions/{question_id}")
async def update_question_route(
    question_id: str,
    patch: QuestionUpdate,
    store: QuestionStore = Depends(get_question_store),
):
    try:
        question = await update_question(question_id, patch, store)
    except QuestionNotFoundError:
        raise HTTPException(status_code=404, detail="Question not found.")
    return _dump(question)


@router.get("/questions")
async def list_questions(
    search: str = "",
    tags: str = "",
    difficulty: str = "",
    question_type: str = "",
    page: int = 1,
    per_page: int = 20,
    store: QuestionStore = Depends(get_question_store),
):
    # list and filter questions with pagination
    items, total = await store.list_questions(
        search=search, tag=tags, difficulty=difficulty, question_type=question_type,
        page=page, per_page=per_page,
    )
    return {"items": [_dump(q) for q in items], "total": total}


@router.get("/questions/{question_id}")
async def get_question_route(question_id: str, store: QuestionStore = Depends(get_question_store)):
    # return a single question or 404
    try:
        question = await get_question(question_id, store)
    except QuestionNotFoundError:
        raise HTTPException(status_code=404, detail="Question not found.")
    return _dump(question)


@router.post("/bulk-import")
async def bulk_import(payload: BulkImportRequest, store: QuestionStore = Depends(get_question_store)):
    if not payload.questions:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No questions to import.")
    if len(payload.questions) > BULK_IMPORT_MAX_ROWS:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"A bulk import may contain at most {BULK_IMPORT_MAX_ROWS} questions.",
        )

    logger.info("Bulk import of %s %s rows (overwrite=%s)",
                len(payload.questions), payload.format, payload.overwrite_existing)
    response = await reconcile_import(
        payload.questions,
        store,
        overwrite_existing=payload.overwrite_existing,
        department=payload.department,
    )
    return _dump(response)


# Upload a JSON / CSV / spreadsheet file & preview its rows
@router.post("/upload")
async def upload_import_file(file: UploadFile = File(...)):
    try:
        file_format = format_for_filename(file.filename)
        preview = parse_import_file(file.file, file_format)
    except ImportFileError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except KeyError as e:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Column not found :{str(e)}. Please check the columns in the uploaded file. "
                f"The file must contain at least these columns {REQUIRED_COLUMNS}. Columns are case sensitive."
            ),
        )

    return {"format": file_format, "total": len(preview), "preview": preview}


@router.get("/import-template")
async def get_import_template():
    return {"format": "json", "questions": import_template()}
