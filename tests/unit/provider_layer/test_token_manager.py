"""
Unit Tests for AmadeusTokenManager

The token endpoint is served by ``httpx.MockTransport`` (see AmadeusStub in
conftest); the token cache is the in-memory backend.
"""

from urllib.parse import parse_qs

import pytest

from flight_search.core.config.constants import CACHE_KEY_AMADEUS_TOKEN
from flight_search.core.config.settings import AmadeusSettings
from flight_search.core.exceptions import ConfigurationError, ProviderApiError, ResilienceFailure
from flight_search.providers.amadeus.token_manager import AmadeusTokenManager


@pytest.mark.unit
class TestTokenAcquisition:
    @pytest.mark.asyncio
    async def test_fetches_with_client_credentials(self, token_manager, amadeus_stub):
        assert await token_manager.get_access_token() == "token-1"

        request = amadeus_stub.requests[0]
        assert request.method == "POST"
        assert parse_qs(request.content.decode()) == {
            "grant_type": ["client_credentials"],
            "client_id": ["test-key"],
            "client_secret": ["test-secret"],
        }

    @pytest.mark.asyncio
    async def test_second_call_served_from_cache(self, token_manager, amadeus_stub):
        await token_manager.get_access_token()
        await token_manager.get_access_token()

        assert amadeus_stub.token_calls == 1

    @pytest.mark.asyncio
    async def test_cached_for_fraction_of_lifetime(self, token_manager, memory_cache):
        await token_manager.get_access_token()

        # floor(1799 * 0.9) = 1619, below the 3300 ceiling
        assert await memory_cache.ttl(CACHE_KEY_AMADEUS_TOKEN) == 1619

    @pytest.mark.asyncio
    async def test_cache_ttl_capped(self, token_manager):
        assert token_manager.cache_ttl_for(7200) == 3300
        assert token_manager.cache_ttl_for(100) == 90

    @pytest.mark.asyncio
    async def test_short_lived_token_not_cached(
        self, token_manager, amadeus_stub, memory_cache, make_token_response
    ):
        amadeus_stub.token_responses.append(make_token_response("brief", expires_in=1))

        assert await token_manager.get_access_token() == "brief"
        assert await memory_cache.get(CACHE_KEY_AMADEUS_TOKEN) is None

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self, token_manager, amadeus_stub, make_token_response):
        amadeus_stub.token_responses.extend(
            [make_token_response("token-1"), make_token_response("token-2")]
        )

        assert await token_manager.get_access_token() == "token-1"
        await token_manager.invalidate_token()
        assert await token_manager.get_access_token() == "token-2"
        assert amadeus_stub.token_calls == 2


@pytest.mark.unit
class TestInvalidGrants:
    @pytest.mark.asyncio
    async def test_empty_token(self, token_manager, amadeus_stub, make_token_response):
        amadeus_stub.token_responses.append(make_token_response("", expires_in=1799))

        with pytest.raises(ProviderApiError) as exc_info:
            await token_manager.get_access_token()

        assert exc_info.value.status_code == 500
        assert "Invalid Token" in exc_info.value.message

    @pytest.mark.parametrize("expires_in", [0, -5])
    @pytest.mark.asyncio
    async def test_non_positive_lifetime(
        self, token_manager, amadeus_stub, memory_cache, make_token_response, expires_in
    ):
        amadeus_stub.token_responses.append(make_token_response("token-1", expires_in=expires_in))

        with pytest.raises(ProviderApiError) as exc_info:
            await token_manager.get_access_token()

        assert exc_info.value.status_code == 500
        assert await memory_cache.get(CACHE_KEY_AMADEUS_TOKEN) is None


@pytest.mark.unit
class TestTokenEndpointFailures:
    @pytest.mark.asyncio
    async def test_rejected_credentials_not_retried(
        self, token_manager, amadeus_stub, make_amadeus_error
    ):
        amadeus_stub.token_responses.append(
            make_amadeus_error(401, "Invalid client", "Client credentials are invalid", 38187)
        )

        with pytest.raises(ResilienceFailure) as exc_info:
            await token_manager.get_access_token()

        root = exc_info.value.root_cause()
        assert isinstance(root, ProviderApiError)
        assert root.status_code == 401
        assert root.error_code == "38187"
        assert amadeus_stub.token_calls == 1

    @pytest.mark.asyncio
    async def test_server_errors_retried(self, token_manager, amadeus_stub, make_amadeus_error, sleep):
        amadeus_stub.token_responses.extend([make_amadeus_error(500), make_amadeus_error(502)])

        assert await token_manager.get_access_token() == "token-1"
        assert amadeus_stub.token_calls == 3
        assert sleep.calls_ms == [200, 400]


@pytest.mark.unit
class TestConfiguration:
    @pytest.mark.parametrize(
        "overrides",
        [{"AMADEUS_API_KEY": ""}, {"AMADEUS_API_SECRET": "  "}],
    )
    @pytest.mark.asyncio
    async def test_missing_credentials(self, cache_store, executor, http_client, overrides):
        settings = AmadeusSettings(
            **{"AMADEUS_API_KEY": "key", "AMADEUS_API_SECRET": "secret", **overrides}
        )

        with pytest.raises(ConfigurationError):
            AmadeusTokenManager(cache_store, executor, http_client, settings)
