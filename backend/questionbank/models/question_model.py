from questionbank.db import Base
import uuid
from datetime import datetime
from sqlalchemy import Column, DateTime, Float, String, Text, Enum
from sqlalchemy.dialects.postgresql import UUID, JSONB # PostgreSQL specific imports


class QuestionDB(Base):
    __tablename__ = "questions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    department_id = Column(String, nullable=True, index=True)
    bank_id = Column(String, nullable=True, index=True)

    # ordered list of type names, e.g. ["multiple_choice", "flashcard"]
    question_types = Column(JSONB, nullable=False)
    question_text = Column(Text, nullable=False, index=True)
    difficulty = Column(Enum('easy', 'medium', 'hard', name='question_difficulty'),
                        nullable=False, default='medium')
    tags = Column(JSONB, nullable=True)
    points = Column(Float, nullable=False, default=1.0)
    explanation = Column(Text, nullable=True)

    # type-specific substructures, only filled for the selected types
    options = Column(JSONB, nullable=True)
    accepted_answers = Column(JSONB, nullable=True)
    sample_answer = Column(Text, nullable=True)
    matching_pairs = Column(JSONB, nullable=True)
    distractors = Column(JSONB, nullable=True)
    flashcard_data = Column(JSONB, nullable=True)
    blanks = Column(JSONB, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
