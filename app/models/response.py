"""SurveyResponseRecord model for storing submitted answer sets.

This module defines the table holding one row per survey response. Answers
are stored as a JSON list since the domain keeps only the latest answer per
question.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Index,
    String,
    DateTime,
    ForeignKey,
    JSON,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.database import Base


class SurveyResponseRecord(Base):
    """Model for storing survey responses.

    Responses are deleted together with their survey (CASCADE).

    Attributes:
        id: Response identifier (``response_<hex>``)
        survey_id: Foreign key to surveys table
        respondent_id: Optional respondent identifier
        respondent_email: Optional respondent email
        answers: JSON list of answer dicts
        response_metadata: Free-form metadata (column ``metadata``)
        started_at: When the response session began
        submitted_at: When the response was submitted
    """

    __tablename__ = "survey_responses"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    survey_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("surveys.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Foreign key to surveys table"
    )

    # Respondent
    respondent_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        comment="Respondent identifier (NULL for anonymous)"
    )
    respondent_email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    # Response Data
    answers: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Latest answer per question"
    )
    response_metadata: Mapped[dict] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
        server_default=text("'{}'"),
        comment="Client metadata (user_language, user agent, ...)"
    )

    # Timestamps
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    submitted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the response was submitted (NULL while in progress)"
    )

    __table_args__ = (
        Index("idx_responses_survey_submitted", "survey_id", "submitted_at"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<SurveyResponseRecord(id={self.id}, "
            f"survey_id={self.survey_id}, "
            f"submitted={self.submitted_at is not None})>"
        )
