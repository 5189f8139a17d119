"""Translation endpoints backed by the configured TranslationService."""

from fastapi import APIRouter, Depends

from app.logging_config import get_logger
from app.routes.dependencies import get_translation
from app.schemas.translation import (
    LanguageOut,
    LanguagesOut,
    TranslateRequest,
    TranslateResponse,
)
from app.services.translation import TranslationService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/translate")


@router.get("/languages", response_model=LanguagesOut)
async def supported_languages(
    translation: TranslationService = Depends(get_translation),
) -> LanguagesOut:
    languages = await translation.get_supported_languages()
    return LanguagesOut(languages=[LanguageOut.model_validate(lang) for lang in languages])


@router.post("", response_model=TranslateResponse)
async def translate(
    body: TranslateRequest,
    translation: TranslationService = Depends(get_translation),
) -> TranslateResponse:
    """Translate a single text or a batch of texts.

    Failed items come back untranslated rather than failing the request.
    """
    if body.texts is not None:
        translated = await translation.translate_batch(
            body.texts, body.target_language, body.source_language
        )
        logger.debug(f"Translated batch of {len(translated)} texts to {body.target_language}")
        return TranslateResponse(
            target_language=body.target_language,
            source_language=body.source_language,
            translated_texts=translated,
        )

    translated_text = await translation.translate_text(
        body.text, body.target_language, body.source_language
    )
    return TranslateResponse(
        target_language=body.target_language,
        source_language=body.source_language,
        translated_text=translated_text,
    )
