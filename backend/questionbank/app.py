from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from .config import CORS_ORIGINS
from .db import create_db_and_tables
from .exceptions import QuestionStoreError, QuestionValidationError
from .logging_config import configure_logging
from .routers import question_bank

logger = configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # run once when app starts
    await create_db_and_tables()
    logger.info("Question bank service started")
    yield

app = FastAPI(lifespan=lifespan)


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,  # which sites can call this API
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(QuestionValidationError)
async def question_validation_error_handler(request: Request, exc: QuestionValidationError):
    # every violation is returned so the console can show them side by side
    return JSONResponse(status_code=422, content=exc.to_dict())


@app.exception_handler(QuestionStoreError)
async def question_store_error_handler(request: Request, exc: QuestionStoreError):
    return JSONResponse(status_code=503, content={"detail": str(exc)})


app.include_router(question_bank.router, prefix="/api")
