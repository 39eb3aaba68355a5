"""
Storage collaborators.

The core never talks to a database directly; it goes through a store with
this small async contract:

- ``find_existing(text)`` -> id of the question with exactly that text, or None
- ``create(question)`` / ``update(question_id, question)`` -> stored Question
- ``get(question_id)`` and ``list_questions(...)``

``InMemoryQuestionStore`` keeps questions in a dict, ``SQLAlchemyQuestionStore``
persists them through an async session.
"""
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import String, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import QuestionNotFoundError, QuestionStoreError
from ..models.question_model import QuestionDB
from ..schemas.question_schema import Question

logger = logging.getLogger(__name__)


class QuestionStore(ABC):

    @abstractmethod
    async def find_existing(self, question_text: str) -> Optional[str]:
        ...

    @abstractmethod
    async def create(self, question: Question) -> Question:
        ...

    @abstractmethod
    async def update(self, question_id: str, question: Question) -> Question:
        ...

    @abstractmethod
    async def get(self, question_id: str) -> Optional[Question]:
        ...

    @abstractmethod
    async def list_questions(
        self,
        search: str = "",
        tag: str = "",
        difficulty: str = "",
        question_type: str = "",
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[Question], int]:
        ...


def _clamp_page(page: int, per_page: int) -> Tuple[int, int]:
    if page < 1:
        page = 1
    if per_page < 1:
        per_page = 20
    return page, per_page


class InMemoryQuestionStore(QuestionStore):
    """Dict-backed store for tests and local tooling."""

    def __init__(self, questions: Optional[List[Question]] = None):
        self._questions: Dict[str, Question] = {}
        for q in questions or []:
            qid = q.id or str(uuid.uuid4())
            self._questions[qid] = q.model_copy(update={"id": qid})

    def __len__(self):
        return len(self._questions)

    async def find_existing(self, question_text: str) -> Optional[str]:
        text = question_text.strip()
        for qid, q in self._questions.items():
            if q.question_text == text:
                return qid
        return None

    async def create(self, question: Question) -> Question:
        now = datetime.utcnow()
        qid = str(uuid.uuid4())
        stored = question.model_copy(update={"id": qid, "created_at": now, "updated_at": now})
        self._questions[qid] = stored
        return stored

    async def update(self, question_id: str, question: Question) -> Question:
        current = self._questions.get(question_id)
        if current is None:
            raise QuestionNotFoundError(question_id)
        stored = question.model_copy(update={
            "id": question_id,
            "department_id": question.department_id or current.department_id,
            "created_at": current.created_at,
            "updated_at": datetime.utcnow(),
        })
        self._questions[question_id] = stored
        return stored

    async def get(self, question_id: str) -> Optional[Question]:
        return self._questions.get(str(question_id))

    async def list_questions(self, search="", tag="", difficulty="", question_type="", page=1, per_page=20):
        items = list(self._questions.values())
        if search:
            needle = search.lower().strip()
            items = [q for q in items if needle in q.question_text.lower()]
        if tag:
            wanted = tag.lower().strip()
            items = [q for q in items if wanted in (t.lower() for t in q.tags)]
        if difficulty:
            items = [q for q in items if q.difficulty.value == difficulty.lower().strip()]
        if question_type:
            items = [q for q in items if question_type.lower().strip() in (t.value for t in q.question_types)]

        page, per_page = _clamp_page(page, per_page)
        start = (page - 1) * per_page
        return items[start:start + per_page], len(items)


def question_to_row_values(question: Question) -> dict:
    return question.model_dump(
        mode="json",
        exclude={"id", "created_at", "updated_at", "correct_answer"},
    )


def row_to_question(row: QuestionDB) -> Question:
    return Question(
        id=str(row.id),
        department_id=row.department_id,
        bank_id=row.bank_id,
        question_types=row.question_types,
        question_text=row.question_text,
        difficulty=row.difficulty,
        tags=row.tags or [],
        points=row.points,
        explanation=row.explanation,
        options=row.options,
        accepted_answers=row.accepted_answers,
        sample_answer=row.sample_answer,
        matching_pairs=row.matching_pairs,
        distractors=row.distractors,
        flashcard_data=row.flashcard_data,
        blanks=row.blanks,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SQLAlchemyQuestionStore(QuestionStore):
    """Store backed by the ``questions`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _fail(self, action: str, e: Exception):
        await self.session.rollback()
        logger.error("Question store failed to %s: %s", action, e)
        raise QuestionStoreError(f"Failed to {action}") from e

    async def _get_row(self, question_id) -> Optional[QuestionDB]:
        try:
            key = uuid.UUID(str(question_id))
        except ValueError:
            return None
        result = await self.session.execute(select(QuestionDB).where(QuestionDB.id == key))
        return result.scalar_one_or_none()

    async def find_existing(self, question_text: str) -> Optional[str]:
        try:
            result = await self.session.execute(
                select(QuestionDB.id).where(QuestionDB.question_text == question_text.strip()).limit(1)
            )
            existing_id = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await self._fail("look up existing question", e)
        return str(existing_id) if existing_id else None

    async def create(self, question: Question) -> Question:
        try:
            row = QuestionDB(**question_to_row_values(question))
            self.session.add(row)
            await self.session.commit()
            await self.session.refresh(row)
        except SQLAlchemyError as e:
            await self._fail("create question", e)
        return row_to_question(row)

    async def update(self, question_id: str, question: Question) -> Question:
        try:
            row = await self._get_row(question_id)
            if row is None:
                raise QuestionNotFoundError(question_id)
            values = question_to_row_values(question)
            if not values.get("department_id"):
                values.pop("department_id", None)
            for key, value in values.items():
                setattr(row, key, value)
            await self.session.commit()
            await self.session.refresh(row)
        except SQLAlchemyError as e:
            await self._fail("update question", e)
        return row_to_question(row)

    async def get(self, question_id: str) -> Optional[Question]:
        try:
            row = await self._get_row(question_id)
        except SQLAlchemyError as e:
            await self._fail("load question", e)
        return row_to_question(row) if row else None

    async def list_questions(self, search="", tag="", difficulty="", question_type="", page=1, per_page=20):
        # list and filter questions with pagination
        conditions = []
        if search:
            conditions.append(func.lower(QuestionDB.question_text).like(f"%{search.lower().strip()}%"))
        if tag:
            conditions.append(func.lower(QuestionDB.tags.cast(String)).like(f'%"{tag.lower().strip()}"%'))
        if difficulty:
            conditions.append(QuestionDB.difficulty == difficulty.lower().strip())
        if question_type:
            conditions.append(QuestionDB.question_types.cast(String).like(f'%"{question_type.lower().strip()}"%'))

        page, per_page = _clamp_page(page, per_page)
        try:
            count_stmt = select(func.count()).select_from(QuestionDB).where(*conditions)
            total = (await self.session.execute(count_stmt)).scalar_one() or 0

            stmt = (
                select(QuestionDB)
                .where(*conditions)
                .order_by(QuestionDB.created_at)
                .offset((page - 1) * per_page)
                .limit(per_page)
            )
            rows = (await self.session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            await self._fail("list questions", e)
        return [row_to_question(r) for r in rows], int(total)
