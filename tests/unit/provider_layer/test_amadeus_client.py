"""
Unit Tests for AmadeusClient

Covers authentication, the single token refresh on 401, and which provider
failures the resilience pipeline retries.
"""

import httpx
import pytest

from flight_search.core.exceptions import ProviderApiError, ResilienceFailure

OFFERS_PATH = "/v2/shopping/flight-offers"


def ok(payload=None) -> httpx.Response:
    return httpx.Response(200, json=payload if payload is not None else {"data": []})


@pytest.mark.unit
class TestAuthenticatedRequests:
    @pytest.mark.asyncio
    async def test_sends_bearer_token_and_params(self, amadeus_client, amadeus_stub):
        amadeus_stub.api_responses.append(ok({"data": [{"id": "1"}]}))

        payload = await amadeus_client.get(OFFERS_PATH, params={"originLocationCode": "JFK"})

        assert payload == {"data": [{"id": "1"}]}
        request = amadeus_stub.api_requests[0]
        assert request.headers["Authorization"] == "Bearer token-1"
        assert request.url.params["originLocationCode"] == "JFK"

    @pytest.mark.asyncio
    async def test_token_reused_across_calls(self, amadeus_client, amadeus_stub):
        await amadeus_client.get(OFFERS_PATH)
        await amadeus_client.get(OFFERS_PATH)

        assert amadeus_stub.token_calls == 1
        assert amadeus_stub.api_calls == 2


@pytest.mark.unit
class TestTokenRefresh:
    @pytest.mark.asyncio
    async def test_401_refreshes_token_once(self, amadeus_client, amadeus_stub, make_token_response):
        amadeus_stub.token_responses.extend(
            [make_token_response("stale"), make_token_response("fresh")]
        )
        amadeus_stub.api_responses.extend([httpx.Response(401), ok()])

        assert await amadeus_client.get(OFFERS_PATH) == {"data": []}
        assert amadeus_stub.token_calls == 2
        assert amadeus_stub.api_calls == 2
        assert amadeus_stub.api_requests[1].headers["Authorization"] == "Bearer fresh"

    @pytest.mark.asyncio
    async def test_second_401_is_final(self, amadeus_client, amadeus_stub, make_amadeus_error):
        amadeus_stub.api_responses.extend(
            [make_amadeus_error(401, "Unauthorized"), make_amadeus_error(401, "Unauthorized")]
        )

        with pytest.raises(ResilienceFailure) as exc_info:
            await amadeus_client.get(OFFERS_PATH)

        assert exc_info.value.root_cause().status_code == 401
        assert amadeus_stub.api_calls == 2
        assert amadeus_stub.token_calls == 2


@pytest.mark.unit
class TestFailureHandling:
    @pytest.mark.asyncio
    async def test_bad_request_not_retried(self, amadeus_client, amadeus_stub, make_amadeus_error, sleep):
        amadeus_stub.api_responses.append(
            make_amadeus_error(400, "INVALID DATE", "Date/Time is in the past", 425)
        )

        with pytest.raises(ResilienceFailure) as exc_info:
            await amadeus_client.get(OFFERS_PATH)

        root = exc_info.value.root_cause()
        assert isinstance(root, ProviderApiError)
        assert root.status_code == 400
        assert root.error_code == "425"
        assert root.details["errors"][0]["title"] == "INVALID DATE"
        assert amadeus_stub.api_calls == 1
        assert sleep.calls == []

    @pytest.mark.parametrize("status", [429, 500, 503])
    @pytest.mark.asyncio
    async def test_transient_errors_retried_then_succeed(
        self, amadeus_client, amadeus_stub, make_amadeus_error, status
    ):
        amadeus_stub.api_responses.extend([make_amadeus_error(status), ok()])

        assert await amadeus_client.get(OFFERS_PATH) == {"data": []}
        assert amadeus_stub.api_calls == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, amadeus_client, amadeus_stub, make_amadeus_error, sleep):
        amadeus_stub.api_responses.extend([make_amadeus_error(503)] * 3)

        with pytest.raises(ResilienceFailure) as exc_info:
            await amadeus_client.get(OFFERS_PATH)

        failure = exc_info.value
        assert failure.classification == "retry"
        assert failure.operation_key == "amadeus.api"
        assert failure.root_cause().status_code == 503
        assert amadeus_stub.api_calls == 3
        assert sleep.calls_ms == [200, 400]

    @pytest.mark.asyncio
    async def test_status_without_error_body(self, amadeus_client, amadeus_stub):
        amadeus_stub.api_responses.extend([httpx.Response(404, text="not here")] * 3)

        with pytest.raises(ResilienceFailure) as exc_info:
            await amadeus_client.get(OFFERS_PATH)

        root = exc_info.value.root_cause()
        assert root.status_code == 404
        assert root.details["errors"][0]["title"] == "HTTP Error"

    @pytest.mark.asyncio
    async def test_network_timeout_maps_to_504(self, amadeus_client, amadeus_stub):
        amadeus_stub.api_responses.extend([httpx.ReadTimeout("read timed out")] * 3)

        with pytest.raises(ResilienceFailure) as exc_info:
            await amadeus_client.get(OFFERS_PATH)

        assert exc_info.value.root_cause().status_code == 504
        assert amadeus_stub.api_calls == 3

    @pytest.mark.asyncio
    async def test_connection_error_maps_to_503(self, amadeus_client, amadeus_stub):
        amadeus_stub.api_responses.extend([httpx.ConnectError("connection refused")] * 3)

        with pytest.raises(ResilienceFailure) as exc_info:
            await amadeus_client.get(OFFERS_PATH)

        assert exc_info.value.root_cause().status_code == 503

    @pytest.mark.asyncio
    async def test_non_json_body(self, amadeus_client, amadeus_stub):
        amadeus_stub.api_responses.extend(
            [httpx.Response(200, text="<html>maintenance</html>")] * 3
        )

        with pytest.raises(ResilienceFailure) as exc_info:
            await amadeus_client.get(OFFERS_PATH)

        root = exc_info.value.root_cause()
        assert root.status_code == 500
        assert "Invalid Response" in root.message

    @pytest.mark.asyncio
    async def test_open_circuit_fails_fast(self, amadeus_client, amadeus_stub, make_amadeus_error):
        # Three failed attempts reach the breaker threshold
        amadeus_stub.api_responses.extend([make_amadeus_error(503)] * 3)
        with pytest.raises(ResilienceFailure):
            await amadeus_client.get(OFFERS_PATH)

        with pytest.raises(ResilienceFailure) as exc_info:
            await amadeus_client.get(OFFERS_PATH)

        assert exc_info.value.classification == "circuit_breaker"
        assert amadeus_stub.api_calls == 3
