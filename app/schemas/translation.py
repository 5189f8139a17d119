"""Pydantic schemas for the translation endpoints."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TranslateRequest(BaseModel):
    """Translate either a single ``text`` or a batch of ``texts``."""

    text: Optional[str] = None
    texts: Optional[List[str]] = Field(None, max_length=500)
    target_language: str = Field(..., min_length=2, max_length=16)
    source_language: Optional[str] = Field(None, min_length=2, max_length=16)

    @model_validator(mode="after")
    def validate_exactly_one_input(self) -> "TranslateRequest":
        """Exactly one of text or texts must be provided."""
        if (self.text is None) == (self.texts is None):
            raise ValueError("Provide exactly one of 'text' or 'texts'")
        return self


class TranslateResponse(BaseModel):
    target_language: str
    source_language: Optional[str] = None
    translated_text: Optional[str] = None
    translated_texts: Optional[List[str]] = None


class LanguageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    name: str
    native_name: str


class LanguagesOut(BaseModel):
    languages: List[LanguageOut]
