"""Tests for outbound confirmation calls."""

import json

import httpx
import pytest

from dispatch.calls.outbound import OutboundCallService
from dispatch.errors import OutboundCallError
from dispatch.schemas.call_schema import CallStatus, StartCallParams, Urgency

API_URL = "https://vapi.test"


def _params(**overrides) -> StartCallParams:
    data = {
        "phone_number": "+61412345678",
        "customer_name": "Jo Citizen",
        "job_type": "Split System Repair",
        "call_reason": "Confirm tomorrow's visit",
        "available_time_slots": "2025-05-20 09:00, 2025-05-20 11:00",
        "booking_id": "b1",
    }
    data.update(overrides)
    return StartCallParams(**data)


def _service(handler) -> tuple[OutboundCallService, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return OutboundCallService(client=client, api_url=API_URL + "/", api_key="k-123"), seen


def _completed(call_id="call-1", structured=None, **call_fields) -> dict:
    call = {
        "id": call_id,
        "customer": {"number": "+61412345678"},
        "metadata": {"bookingId": "b1", "customerName": "Jo Citizen"},
        "analysis": {"structuredData": structured} if structured is not None else {},
    }
    call.update(call_fields)
    return {"type": "call.completed", "call": call}


class TestBuildRequest:
    def test_prompt_filled_with_call_context(self):
        body = OutboundCallService(api_url=API_URL, api_key="k").build_request(_params())
        prompt = body["assistant"]["model"]["messages"][0]["content"]
        assert "Customer: Jo Citizen" in prompt
        assert "Reason for call: Confirm tomorrow's visit" in prompt
        assert "{{" not in prompt

    def test_first_message_and_metadata(self):
        body = OutboundCallService(api_url=API_URL, api_key="k").build_request(_params())
        assert body["phoneNumber"] == "+61412345678"
        assert "G'day Jo Citizen" in body["assistant"]["firstMessage"]
        assert body["assistant"]["model"]["provider"] == "openai"
        assert body["metadata"] == {
            "bookingId": "b1",
            "customerName": "Jo Citizen",
            "reason": "Confirm tomorrow's visit",
        }


class TestStartCall:
    @pytest.mark.asyncio
    async def test_returns_call_id_and_tracks_record(self):
        service, seen = _service(lambda r: httpx.Response(201, json={"id": "call-1"}))
        call_id = await service.start_call(_params())

        assert call_id == "call-1"
        assert service.calls["call-1"].status == CallStatus.ACTIVE
        request = seen[0]
        assert str(request.url) == "https://vapi.test/call/phone"
        assert request.headers["Authorization"] == "Bearer k-123"
        assert json.loads(request.content)["phoneNumber"] == "+61412345678"

    @pytest.mark.asyncio
    async def test_provider_message_surfaced(self):
        service, _ = _service(
            lambda r: httpx.Response(400, json={"message": ["phoneNumber must be E.164"]})
        )
        with pytest.raises(OutboundCallError, match="E.164"):
            await service.start_call(_params())
        assert service.calls == {}

    @pytest.mark.asyncio
    async def test_generic_failure_message(self):
        service, _ = _service(lambda r: httpx.Response(500, text="oops"))
        with pytest.raises(OutboundCallError, match="VAPI Request Failed"):
            await service.start_call(_params())

    @pytest.mark.asyncio
    async def test_missing_call_id(self):
        service, _ = _service(lambda r: httpx.Response(200, json={}))
        with pytest.raises(OutboundCallError):
            await service.start_call(_params())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [[{"id": "call-1"}], "call-1", {"id": 42}])
    async def test_unexpected_body_rejected(self, body):
        service, _ = _service(lambda r: httpx.Response(201, json=body))
        with pytest.raises(OutboundCallError, match="call id"):
            await service.start_call(_params())
        assert service.calls == {}

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        service, _ = _service(refuse)
        with pytest.raises(OutboundCallError, match="unreachable"):
            await service.start_call(_params())


class TestWebhook:
    def test_structured_result(self):
        service = OutboundCallService(api_url=API_URL, api_key="k")
        record = service.handle_webhook(_completed(structured={
            "booking_confirmed": True,
            "selected_time": "2025-05-20 11:00",
            "urgency": "high",
            "notes": "No cooling",
        }))
        assert record.status == CallStatus.COMPLETED
        assert record.result.booking_confirmed is True
        assert record.result.urgency == Urgency.HIGH
        assert service.calls["call-1"] is record

    def test_missing_analysis_defaults(self):
        service = OutboundCallService(api_url=API_URL, api_key="k")
        record = service.handle_webhook(_completed(customer=None, metadata=None))
        assert record.phone_number == "Unknown"
        assert record.customer_name == "Client"
        assert record.result.booking_confirmed is False
        assert record.result.urgency == Urgency.LOW

    def test_malformed_structured_data_defaults(self):
        service = OutboundCallService(api_url=API_URL, api_key="k")
        record = service.handle_webhook(_completed(structured={"urgency": "apocalyptic"}))
        assert record.result.urgency == Urgency.LOW

    def test_uppercase_urgency_accepted(self):
        service = OutboundCallService(api_url=API_URL, api_key="k")
        record = service.handle_webhook(_completed(structured={
            "booking_confirmed": True,
            "selected_time": "2025-05-20 09:00",
            "urgency": "HIGH",
        }))
        assert record.result.urgency == Urgency.HIGH
        assert record.result.booking_confirmed is True
        assert record.result.selected_time == "2025-05-20 09:00"

    def test_bad_field_keeps_the_rest(self):
        service = OutboundCallService(api_url=API_URL, api_key="k")
        record = service.handle_webhook(_completed(structured={
            "booking_confirmed": True,
            "selected_time": 900,
            "urgency": "Medium",
            "notes": "Gate code 1234",
        }))
        assert record.result.booking_confirmed is True
        assert record.result.selected_time is None
        assert record.result.urgency == Urgency.MEDIUM
        assert record.result.notes == "Gate code 1234"

    def test_non_object_structured_data_defaults(self):
        service = OutboundCallService(api_url=API_URL, api_key="k")
        record = service.handle_webhook(_completed(structured=["yes"]))
        assert record.result.booking_confirmed is False

    @pytest.mark.asyncio
    async def test_keeps_original_start_time(self):
        service, _ = _service(lambda r: httpx.Response(201, json={"id": "call-1"}))
        await service.start_call(_params())
        started_at = service.calls["call-1"].created_at
        record = service.handle_webhook(_completed())
        assert record.created_at == started_at

    def test_other_events_ignored(self):
        service = OutboundCallService(api_url=API_URL, api_key="k")
        assert service.handle_webhook({"type": "status-update", "call": {"id": "x"}}) is None
        assert service.calls == {}
