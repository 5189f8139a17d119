"""Pytest configuration and shared fixtures.

This module provides fixtures and configuration used across all tests.
"""

import os
from typing import Callable, Generator, List, Optional

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set required environment variables for tests BEFORE importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("GENERATOR_PROVIDER", "template")
os.environ.setdefault("TRANSLATION_PROVIDER", "none")

from app.domain.question import Question, QuestionType
from app.domain.survey import Survey
from app.models.database import Base
from app.models import survey as survey_models, response as response_models  # noqa: F401
from app.repositories.memory import InMemorySurveyRepository, InMemorySurveyResponseRepository
from app.services.event_bus import EventBus
from app.services.question_generator import (
    DynamicQuestionParams,
    QuestionGenerationParams,
    QuestionGenerator,
)


class StubQuestionGenerator(QuestionGenerator):
    """Deterministic generator for tests.

    Attributes:
        fail_with: Exception raised by every generation call when set
        dynamic_batch_size: Overrides how many questions a dynamic batch returns
        calls: Parameters of every generation call, in order
    """

    def __init__(self):
        self.fail_with: Optional[Exception] = None
        self.dynamic_batch_size: Optional[int] = None
        self.calls: List[object] = []
        self._counter = 0

    def _next(self, prefix: str) -> Question:
        self._counter += 1
        return Question.create_ai_generated(
            f"{prefix} question {self._counter}", QuestionType.TEXT, is_required=False
        )

    async def generate_questions(self, params: QuestionGenerationParams) -> List[Question]:
        self.calls.append(params)
        if self.fail_with is not None:
            raise self.fail_with
        return [self._next(params.topic) for _ in range(params.question_count)]

    async def generate_dynamic_question(self, params: DynamicQuestionParams) -> Question:
        self.calls.append(params)
        if self.fail_with is not None:
            raise self.fail_with
        return self._next("Dynamic")

    async def generate_dynamic_questions(self, params: DynamicQuestionParams) -> List[Question]:
        self.calls.append(params)
        if self.fail_with is not None:
            raise self.fail_with
        count = params.question_count if self.dynamic_batch_size is None else self.dynamic_batch_size
        return [self._next("Dynamic") for _ in range(count)]

    async def is_available(self) -> bool:
        return self.fail_with is None


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine with SQLite in-memory database.

    Yields:
        Engine: SQLAlchemy engine for testing

    Note:
        StaticPool keeps a single connection so the in-memory database is
        shared with TestClient worker threads.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,  # Set to True for SQL debugging
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session_factory(db_engine) -> sessionmaker:
    return sessionmaker(
        bind=db_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture(scope="function")
def db_session(db_session_factory) -> Generator[Session, None, None]:
    """Create a test database session.

    Yields:
        Session: SQLAlchemy session for testing
    """
    session = db_session_factory()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def survey_repository() -> InMemorySurveyRepository:
    return InMemorySurveyRepository()


@pytest.fixture
def response_repository() -> InMemorySurveyResponseRepository:
    return InMemorySurveyResponseRepository()


@pytest.fixture
def event_bus() -> EventBus:
    """Event bus that remembers every published event."""
    return EventBus(record_history=True)


@pytest.fixture
def stub_generator() -> StubQuestionGenerator:
    return StubQuestionGenerator()


@pytest.fixture
def make_survey() -> Callable[..., Survey]:
    """Factory for surveys with a given number of static questions.

    Example:
        survey = make_survey(static_questions=8, goal="improve onboarding")
    """

    def _make(
        static_questions: int = 3,
        goal: str = "improve onboarding",
        max_questions: int = 10,
        title: str = "Onboarding feedback",
        owner_id: Optional[str] = "owner-1",
    ) -> Survey:
        survey = Survey.create(title, "How was your first week?", owner_id)
        survey.set_goal(goal)
        survey.set_max_questions(max_questions)
        for index in range(static_questions):
            survey.add_question(
                Question.create(f"Static question {index + 1}", QuestionType.TEXT)
            )
        survey.pull_domain_events()
        return survey

    return _make


@pytest.fixture
def stored_survey(survey_repository, make_survey) -> Survey:
    """A survey with three static questions saved in the in-memory repository."""
    survey = make_survey()
    survey_repository.save(survey)
    return survey
