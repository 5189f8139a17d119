"""Question bank loader with caching and validation.

This module loads the question bank from YAML, validates it against the
Pydantic schemas in ``app.schemas.question_bank``, and caches the result.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from app.logging_config import get_logger
from app.schemas.question_bank import QuestionBank

logger = get_logger(__name__)

DEFAULT_BANK_PATH = Path(__file__).resolve().parent.parent / "data" / "question_bank.yaml"


class QuestionBankNotFoundError(Exception):
    """Raised when the question bank file does not exist."""
    pass


class QuestionBankValidationError(Exception):
    """Raised when the question bank fails to parse or validate."""
    pass


class QuestionBankLoader:
    """Loads and caches question bank definitions."""

    def __init__(self, bank_path: Optional[str] = None):
        """Initialize the loader.

        Args:
            bank_path: Path to the YAML bank (defaults to app/data/question_bank.yaml)
        """
        self.bank_path = Path(bank_path) if bank_path else DEFAULT_BANK_PATH

    @lru_cache(maxsize=4)
    def load(self) -> QuestionBank:
        """Load and validate the question bank.

        Results are cached; call ``clear_cache()`` to reload.

        Returns:
            Validated QuestionBank

        Raises:
            QuestionBankNotFoundError: If the file doesn't exist
            QuestionBankValidationError: If the YAML is invalid or fails validation
        """
        if not self.bank_path.exists():
            logger.error(f"Question bank not found: {self.bank_path}")
            raise QuestionBankNotFoundError(f"Question bank not found at {self.bank_path}")

        try:
            with open(self.bank_path, "r", encoding="utf-8") as f:
                raw_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"YAML parsing error for question bank: {e}")
            raise QuestionBankValidationError(f"Invalid YAML in question bank: {e}")

        if not isinstance(raw_data, dict):
            raise QuestionBankValidationError("Question bank must be a mapping")

        try:
            bank = QuestionBank(**raw_data)
        except ValidationError as e:
            logger.error(f"Validation error for question bank: {e}")
            raise QuestionBankValidationError(f"Question bank validation failed: {e}")

        logger.info(
            f"Loaded question bank v{bank.version}: {len(bank.topics)} topics, "
            f"{len(bank.follow_up)} follow-up templates"
        )
        return bank

    def clear_cache(self) -> None:
        self.load.cache_clear()
        logger.info("Question bank cache cleared")


# Global singleton instance
_loader_instance: Optional[QuestionBankLoader] = None


def get_question_bank_loader() -> QuestionBankLoader:
    """Get global QuestionBankLoader instance."""
    global _loader_instance
    if _loader_instance is None:
        _loader_instance = QuestionBankLoader()
    return _loader_instance
