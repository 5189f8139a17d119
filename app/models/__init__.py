"""Database models and session management.

This package contains all SQLAlchemy ORM models and database utilities.
"""

from app.models.database import Base, engine, SessionLocal, get_db, init_db
from app.models.survey import SurveyRecord, QuestionRecord
from app.models.response import SurveyResponseRecord

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "init_db",
    "SurveyRecord",
    "QuestionRecord",
    "SurveyResponseRecord",
]
