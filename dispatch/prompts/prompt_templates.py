"""Dynamic prompt construction from live ledger state and session data."""

from typing import Optional, Sequence

from dispatch.prompts.system_prompts import (
    AVAILABILITY_PLACEHOLDER,
    CURRENT_TIME_PLACEHOLDER,
    EXTRACTION_INSTRUCTIONS,
    MASTER_PROMPT,
    OUTBOUND_CALL_PROMPT,
)
from dispatch.scheduling.slots import format_business_time
from dispatch.schemas.call_schema import StartCallParams
from dispatch.schemas.conversation_schema import TranscriptTurn


def build_system_directive(
    availability_info: str,
    current_time: Optional[str] = None,
    template: str = MASTER_PROMPT,
) -> str:
    """Fill the master prompt with the availability digest and business time.

    The assistant only ever quotes the slots it is handed here.
    """
    return (
        template
        .replace(AVAILABILITY_PLACEHOLDER, availability_info)
        .replace(CURRENT_TIME_PLACEHOLDER, current_time or format_business_time())
    )


def render_transcript(transcript: Sequence[TranscriptTurn]) -> str:
    return "\n".join(turn.render() for turn in transcript)


def build_extraction_prompt(transcript: Sequence[TranscriptTurn]) -> str:
    """Extraction request over the full transcript so far."""
    return f"{EXTRACTION_INSTRUCTIONS}\n\nCONVERSATION:\n{render_transcript(transcript)}"


def build_outbound_prompt(params: StartCallParams) -> str:
    return (
        OUTBOUND_CALL_PROMPT
        .replace("{{CUSTOMER_NAME}}", params.customer_name)
        .replace("{{JOB_TYPE}}", params.job_type)
        .replace("{{CALL_REASON}}", params.call_reason)
        .replace("{{TIME_SLOTS}}", params.available_time_slots)
    )
