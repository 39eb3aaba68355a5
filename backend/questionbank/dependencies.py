from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_async_session
from .services.question_store import QuestionStore, SQLAlchemyQuestionStore


async def get_question_store(session: AsyncSession = Depends(get_async_session)) -> QuestionStore:
    # tests override this with an in-memory store
    return SQLAlchemyQuestionStore(session)
