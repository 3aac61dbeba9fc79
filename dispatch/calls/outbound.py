"""
AI outbound confirmation calls through the Vapi HTTP API.

``start_call`` asks the provider to phone a customer with a scripted
assistant; ``handle_webhook`` turns the provider's completion event into
an ``OutboundCallRecord``. Call records live for the process only and
never touch booking state.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from dispatch.config import settings
from dispatch.errors import OutboundCallError
from dispatch.prompts.prompt_templates import build_outbound_prompt
from dispatch.prompts.system_prompts import OUTBOUND_FIRST_MESSAGE
from dispatch.scheduling.slots import now_iso
from dispatch.schemas.call_schema import (
    CallResult,
    CallStatus,
    OutboundCallRecord,
    StartCallParams,
)

logger = logging.getLogger(__name__)

COMPLETED_EVENT = "call.completed"


class OutboundCallService:
    """Starts outbound calls and tracks their records by call id."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> None:
        self._client = client
        self._api_url = (api_url or settings.calls.api_url).rstrip("/")
        self._api_key = api_key if api_key is not None else settings.calls.api_key
        self.calls: dict[str, OutboundCallRecord] = {}

    def build_request(self, params: StartCallParams) -> dict[str, Any]:
        """JSON body for ``POST /call/phone``."""
        return {
            "phoneNumber": params.phone_number,
            "assistant": {
                "model": {
                    "provider": "openai",
                    "model": settings.calls.model,
                    "messages": [{"role": "system", "content": build_outbound_prompt(params)}],
                },
                "voice": settings.calls.voice,
                "firstMessage": OUTBOUND_FIRST_MESSAGE.format(
                    customer_name=params.customer_name, job_type=params.job_type
                ),
            },
            "metadata": {
                "bookingId": params.booking_id,
                "customerName": params.customer_name,
                "reason": params.call_reason,
            },
        }

    async def _post(self, path: str, body: dict[str, Any]) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        url = f"{self._api_url}{path}"
        if self._client is not None:
            return await self._client.post(url, json=body, headers=headers)
        async with httpx.AsyncClient(timeout=settings.calls.timeout_sec) as client:
            return await client.post(url, json=body, headers=headers)

    async def start_call(self, params: StartCallParams) -> str:
        """
        Place an outbound call and return the provider's call id.

        Raises:
            OutboundCallError: If the provider is unreachable, rejects the
                request, or answers without a call id.
        """
        try:
            response = await self._post("/call/phone", self.build_request(params))
        except httpx.HTTPError as e:
            logger.error("Outbound call to %s failed: %s", params.phone_number, e)
            raise OutboundCallError(f"Call provider unreachable: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.error(
                "Outbound call rejected (%d): %s", response.status_code, message
            )
            raise OutboundCallError(message)

        try:
            body = response.json()
        except ValueError:
            body = None
        call_id = body.get("id") if isinstance(body, dict) else None
        if not isinstance(call_id, str) or not call_id:
            logger.error("Outbound call to %s: unexpected provider response", params.phone_number)
            raise OutboundCallError("Call provider response did not include a call id")

        self.calls[call_id] = OutboundCallRecord(
            id=call_id,
            booking_id=params.booking_id,
            phone_number=params.phone_number,
            customer_name=params.customer_name,
            status=CallStatus.ACTIVE,
            created_at=now_iso(),
        )
        logger.info(
            "Outbound call %s started to %s (booking %s)",
            call_id, params.customer_name, params.booking_id,
        )
        return call_id

    def handle_webhook(self, payload: dict[str, Any]) -> Optional[OutboundCallRecord]:
        """
        Normalize a provider webhook into a completed call record.

        Only ``call.completed`` events are handled; anything else returns
        None. A missing structured result falls back to an unconfirmed,
        low-urgency result; a malformed one loses only its bad fields.
        """
        if payload.get("type") != COMPLETED_EVENT:
            return None

        call = payload.get("call") or {}
        metadata = call.get("metadata") or {}
        analysis = call.get("analysis") or {}

        result = CallResult()
        structured = analysis.get("structuredData")
        if structured:
            result = _parse_call_result(structured, call.get("id"))
        elif analysis.get("summary"):
            logger.info("Call %s summary: %s", call.get("id"), analysis["summary"])

        call_id = call.get("id") or ""
        previous = self.calls.get(call_id)
        record = OutboundCallRecord(
            id=call_id,
            booking_id=metadata.get("bookingId"),
            phone_number=(call.get("customer") or {}).get("number") or "Unknown",
            customer_name=metadata.get("customerName") or "Client",
            status=CallStatus.COMPLETED,
            result=result,
            created_at=previous.created_at if previous else now_iso(),
        )
        if call_id:
            self.calls[call_id] = record
        logger.info(
            "Call %s completed: confirmed=%s urgency=%s",
            call_id, result.booking_confirmed, result.urgency.value,
        )
        return record


def _parse_call_result(structured: Any, call_id: Any) -> CallResult:
    """Validate the assistant's structured result, defaulting bad fields one by one."""
    if not isinstance(structured, dict):
        logger.warning("Call %s: structured result is not an object, using defaults", call_id)
        return CallResult()
    try:
        return CallResult.model_validate(structured)
    except ValidationError as e:
        bad = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
        logger.warning(
            "Call %s: defaulting malformed result field(s) %s", call_id, ", ".join(sorted(bad))
        )
        return CallResult.model_validate(
            {k: v for k, v in structured.items() if k not in bad}
        )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        message = body["message"]
        return ", ".join(message) if isinstance(message, list) else str(message)
    return "VAPI Request Failed"
