"""Health check endpoint for monitoring and deployment verification.

Verifies that the application is running, the database answers, and
reports which generator and translation providers are configured.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.database import get_db
from app.routes.dependencies import get_generator
from app.services.event_bus import get_event_statistics
from app.services.question_generator import QuestionGenerator
from app.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(
    db: Session = Depends(get_db),
    generator: QuestionGenerator = Depends(get_generator),
) -> dict:
    """Health check endpoint.

    Returns:
        dict: Health check status with database and provider info

    Raises:
        HTTPException: If database connection fails (503 Service Unavailable)

    Example response:
        {
            "status": "healthy",
            "database": "connected",
            "generator": {"provider": "template", "available": true},
            "translation": {"provider": "none"},
            "events": {"surveys_created": 3, "dynamic_questions_added": 0, "responses_submitted": 0}
        }
    """
    settings = get_settings()
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(
            status_code=503,
            detail="Service unavailable - database connection failed"
        )

    generator_available = await generator.is_available()
    logger.debug("Health check passed")

    return {
        "status": "healthy",
        "database": "connected",
        "generator": {
            "provider": settings.generator_provider,
            "available": generator_available,
        },
        "translation": {"provider": settings.translation_provider},
        "events": get_event_statistics().snapshot(),
    }
