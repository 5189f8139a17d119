"""Survey and question ORM models.

This module defines the tables backing the Survey aggregate. Static and
dynamic questions share one table and are told apart by ``is_dynamic``.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Index,
    String,
    Text,
    Integer,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    text as sa_text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.database import Base


class SurveyRecord(Base):
    """Stored survey definition and generation settings.

    Attributes:
        id: Survey identifier (``survey_<hex>``)
        owner_id: Identifier of the authoring user
        title: Survey title
        description: Free-text description
        goal: Generation goal; empty disables dynamic questions
        max_questions: Ceiling on static + dynamic questions
        target_language: Language answers are normalized to
        auto_translate: Whether submissions are translated
        is_active: Whether the survey accepts responses
        version: Optimistic concurrency counter, bumped on every save
        created_at: Creation timestamp
        updated_at: Last update timestamp
        questions: All questions, ordered by position
    """

    __tablename__ = "surveys"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    owner_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        comment="Identifier of the authoring user"
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Survey title"
    )
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Free-text description"
    )
    goal: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Dynamic generation goal (empty disables generation)"
    )

    # Generation Settings
    max_questions: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=10,
        comment="Ceiling on static + dynamic question count"
    )
    target_language: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="en",
        comment="Target language code"
    )
    auto_translate: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Translate submissions into the target language"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Whether the survey accepts responses"
    )

    # Optimistic Concurrency
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Incremented on every successful save"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=sa_text("CURRENT_TIMESTAMP"),
        comment="When the survey was created"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=sa_text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
        comment="Last update timestamp"
    )

    questions: Mapped[list["QuestionRecord"]] = relationship(
        "QuestionRecord",
        back_populates="survey",
        cascade="all, delete-orphan",
        order_by="QuestionRecord.position",
    )

    __table_args__ = (
        Index("idx_surveys_active_created", "is_active", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<SurveyRecord(id={self.id}, title={self.title!r}, "
            f"version={self.version}, active={self.is_active})>"
        )


class QuestionRecord(Base):
    """Stored question belonging to a survey.

    Attributes:
        id: Question identifier (``question_<hex>``)
        survey_id: Foreign key to surveys table
        text: Question text
        question_type: QuestionType value
        options: Option labels (JSON list)
        is_required: Whether an answer is required
        is_ai_generated: Whether the generator produced the question
        is_dynamic: True for questions appended during a response session
        position: Index within the static or dynamic list
        order: Display order recorded on the entity
        created_at: Creation timestamp
    """

    __tablename__ = "survey_questions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    survey_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("surveys.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Foreign key to surveys table"
    )

    text: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(String(32), nullable=False)
    options: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Option labels; scale questions hold min/max labels"
    )
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_ai_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_dynamic: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Appended by the dynamic question flow"
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    order: Mapped[int] = mapped_column("display_order", Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=sa_text("CURRENT_TIMESTAMP"),
    )

    survey: Mapped["SurveyRecord"] = relationship(
        "SurveyRecord",
        back_populates="questions",
    )

    __table_args__ = (
        Index("idx_questions_survey_dynamic", "survey_id", "is_dynamic", "position"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<QuestionRecord(id={self.id}, survey_id={self.survey_id}, "
            f"type={self.question_type}, dynamic={self.is_dynamic})>"
        )
