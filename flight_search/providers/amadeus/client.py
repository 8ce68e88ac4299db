"""
Amadeus HTTP Client

Authenticated GET requests to the Amadeus API, executed under the
``amadeus.api`` resilience policy.

Per attempt:
1. Fetch a bearer token from the token manager (cached or fresh)
2. Send the request
3. On HTTP 401, invalidate the cached token and resend exactly once with a
   fresh token
4. Translate error responses and transport failures into ProviderApiError
"""

from typing import Any

import httpx

from flight_search.core.config.constants import (
    OPERATION_AMADEUS_API,
    PROVIDER_CALL_TIMEOUT_MS,
    Stage,
)
from flight_search.core.config.settings import AmadeusSettings
from flight_search.core.logging.logger import get_logger
from flight_search.core.resilience import ResilienceExecutor, ResilienceOptions
from flight_search.providers.amadeus.errors import (
    error_from_response,
    error_from_transport,
    invalid_payload,
    is_retryable_failure,
)
from flight_search.providers.amadeus.token_manager import AmadeusTokenManager

logger = get_logger(__name__)


def create_http_client(
    settings: AmadeusSettings, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    """
    Shared HTTP client for token and API calls.

    ``transport`` lets tests plug in ``httpx.MockTransport``.
    """
    return httpx.AsyncClient(
        base_url=settings.AMADEUS_BASE_URL,
        timeout=httpx.Timeout(PROVIDER_CALL_TIMEOUT_MS / 1000),
        headers={"Accept": "application/json"},
        transport=transport,
    )


class AmadeusClient:
    """
    Usage:
        client = AmadeusClient(token_manager, executor, http_client)
        payload = await client.get("/v2/shopping/flight-offers", params={...})
    """

    def __init__(
        self,
        token_manager: AmadeusTokenManager,
        executor: ResilienceExecutor,
        http_client: httpx.AsyncClient,
    ):
        self._tokens = token_manager
        self._executor = executor
        self._http = http_client
        self._options = ResilienceOptions(
            timeout_ms=PROVIDER_CALL_TIMEOUT_MS,
            retry_condition=is_retryable_failure,
            share_circuit_breaker=True,
        )

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """
        STAGE-4.0: Protected provider GET

        Returns:
            Decoded JSON body

        Raises:
            ResilienceFailure: Wrapping the ProviderApiError (or timeout /
                open circuit) that ended the call
        """

        async def attempt() -> Any:
            return await self._send(path, params)

        return await self._executor.execute(OPERATION_AMADEUS_API, attempt, self._options)

    async def _authorized_get(self, path: str, params: dict[str, Any] | None) -> httpx.Response:
        token = await self._tokens.get_access_token()
        try:
            return await self._http.get(
                path, params=params, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.HTTPError as e:
            logger.error(
                "Network error calling Amadeus",
                stage=Stage.PROVIDER_CALL.value,
                path=path,
                error=str(e),
            )
            raise error_from_transport(e) from e

    async def _send(self, path: str, params: dict[str, Any] | None) -> Any:
        response = await self._authorized_get(path, params)

        if response.status_code == 401:
            logger.warning(
                "Access token rejected, refreshing once",
                stage=Stage.PROVIDER_CALL.value,
                path=path,
            )
            await self._tokens.invalidate_token()
            response = await self._authorized_get(path, params)

        if response.is_error:
            error = error_from_response(response)
            logger.error(
                "Amadeus API error",
                stage=Stage.PROVIDER_CALL.value,
                path=path,
                status=error.status_code,
                error_code=error.error_code,
            )
            raise error

        logger.debug(
            "Amadeus API response",
            stage=Stage.PROVIDER_CALL.value,
            path=path,
            status=response.status_code,
        )
        try:
            return response.json()
        except ValueError as e:
            raise invalid_payload("response body is not JSON", path=path) from e
