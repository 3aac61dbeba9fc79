"""
Extraction oracle: reads structured booking state back out of a transcript.

The conversational model is free text. Whether a booking should be
committed is decided by a separate, schema-constrained pass over the
whole transcript, so chatting and committing never share a code path.
"""

import json
from typing import Optional, Protocol, Sequence

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from dispatch.config import settings
from dispatch.errors import ExtractionError
from dispatch.logging_context import get_session_logger
from dispatch.prompts.prompt_templates import build_extraction_prompt
from dispatch.schemas.conversation_schema import ExtractionResult, TranscriptTurn

logger = get_session_logger(__name__)

EXTRACTION_SYSTEM_PROMPT = (
    "You extract booking details from HVAC service conversations. "
    "Respond in JSON only."
)


class ExtractionOracle(Protocol):
    """Anything that can turn a transcript into an ``ExtractionResult``.

    Implementations raise ``ExtractionError`` on transport failures or
    non-conforming output.
    """

    async def extract(self, transcript: Sequence[TranscriptTurn]) -> ExtractionResult:
        ...


def parse_extraction(raw: Optional[str]) -> ExtractionResult:
    """Validate a raw JSON reply against the extraction schema.

    Raises:
        ExtractionError: If the reply is not a JSON object or does not
            match the schema.
    """
    try:
        data = json.loads(raw or "{}")
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Extraction reply is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ExtractionError(
            f"Extraction reply must be a JSON object, got {type(data).__name__}"
        )
    try:
        return ExtractionResult.model_validate(data)
    except ValidationError as e:
        raise ExtractionError(
            f"Extraction reply does not match schema: {e.error_count()} error(s)"
        ) from e


class OpenAIExtractionOracle:
    """Extraction via an OpenAI chat completion in JSON mode."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=settings.model.openai_api_key or None)
        self._model = model or settings.model.extraction_model

    async def extract(self, transcript: Sequence[TranscriptTurn]) -> ExtractionResult:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                    {"role": "user", "content": build_extraction_prompt(transcript)},
                ],
                temperature=0.0,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            raise ExtractionError(f"Extraction request failed: {e}") from e

        if not response.choices:
            raise ExtractionError("Extraction reply contained no choices")
        result = parse_extraction(response.choices[0].message.content)
        logger.debug(
            "Extraction over %d turn(s): complete=%s confirmed=%s",
            len(transcript), result.is_complete, result.is_confirmed,
        )
        return result
