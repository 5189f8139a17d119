"""Routes package for FastAPI endpoints.

This package contains all API route modules for the Adaptive Survey Service.
"""

from app.routes import dynamic_questions, health, responses, surveys, translation

__all__ = ["dynamic_questions", "health", "responses", "surveys", "translation"]
