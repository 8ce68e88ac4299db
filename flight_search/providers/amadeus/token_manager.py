"""
Amadeus Access Token Manager

Lifecycle of the OAuth2 client-credentials token:

1. Look up ``auth:amadeus:token`` in the cache store
2. On a miss, POST the client credentials under the ``amadeus.token``
   resilience policy
3. Validate the grant and cache the token for a fraction of its declared
   lifetime, so a cached token always expires before the provider's copy
4. ``invalidate_token()`` drops the cached token (called on HTTP 401)
"""

import math

import httpx
from pydantic import ValidationError as PydanticValidationError

from flight_search.core.config.constants import (
    CACHE_KEY_AMADEUS_TOKEN,
    OPERATION_AMADEUS_TOKEN,
    PROVIDER_CALL_TIMEOUT_MS,
    Stage,
)
from flight_search.core.config.settings import AmadeusSettings, get_settings
from flight_search.core.exceptions import ConfigurationError, ProviderApiError
from flight_search.core.logging.logger import get_logger
from flight_search.core.resilience import ResilienceExecutor, ResilienceOptions
from flight_search.infrastructure.cache.cache_store import CacheStore
from flight_search.providers.amadeus.errors import (
    error_from_response,
    error_from_transport,
    is_retryable_failure,
)
from flight_search.providers.amadeus.models import OAUTH_TOKEN_PATH, TokenResponse

logger = get_logger(__name__)


class AmadeusTokenManager:
    """
    Fetches, caches and invalidates the Amadeus bearer token.

    Usage:
        tokens = AmadeusTokenManager(cache_store, executor, http_client)
        token = await tokens.get_access_token()
    """

    def __init__(
        self,
        cache: CacheStore,
        executor: ResilienceExecutor,
        http_client: httpx.AsyncClient,
        settings: AmadeusSettings | None = None,
    ):
        self._settings = settings or get_settings().amadeus
        if not self._settings.AMADEUS_API_KEY.strip():
            raise ConfigurationError("AMADEUS_API_KEY is not configured").with_suggestion(
                "Set AMADEUS_API_KEY in the environment or .env file"
            )
        if not self._settings.AMADEUS_API_SECRET.strip():
            raise ConfigurationError("AMADEUS_API_SECRET is not configured").with_suggestion(
                "Set AMADEUS_API_SECRET in the environment or .env file"
            )

        self._cache = cache
        self._executor = executor
        self._http = http_client
        self._options = ResilienceOptions(
            timeout_ms=PROVIDER_CALL_TIMEOUT_MS,
            retry_condition=is_retryable_failure,
            share_circuit_breaker=True,
        )

    def cache_ttl_for(self, expires_in: int) -> int:
        """Seconds to cache a token declared valid for ``expires_in`` seconds."""
        return min(
            self._settings.AMADEUS_TOKEN_CACHE_TTL,
            math.floor(expires_in * self._settings.AMADEUS_TOKEN_TTL_FRACTION),
        )

    async def get_access_token(self) -> str:
        """
        STAGE-3.0: Credential lookup

        Raises:
            ResilienceFailure: Token endpoint unreachable or rejected the grant
            ProviderApiError: Grant succeeded but carried an unusable token
        """
        cached = await self._cache.get(CACHE_KEY_AMADEUS_TOKEN)
        if isinstance(cached, str) and cached:
            logger.debug("Access token served from cache", stage=Stage.CREDENTIALS.value)
            return cached

        logger.info("Access token not cached, requesting a new one", stage=Stage.CREDENTIALS.value)
        grant = await self._executor.execute(
            OPERATION_AMADEUS_TOKEN, self._fetch_token, self._options
        )

        if not grant.access_token.strip():
            logger.error("Token endpoint returned an empty token", stage=Stage.CREDENTIALS.value)
            raise ProviderApiError(
                "Invalid Token: token endpoint returned an empty access token",
                status_code=500,
                errors=[{"status": 500, "code": 0, "title": "Invalid Token"}],
            )
        if grant.expires_in <= 0:
            logger.error(
                "Token endpoint returned a non-positive lifetime",
                stage=Stage.CREDENTIALS.value,
                expires_in=grant.expires_in,
            )
            raise ProviderApiError(
                "Invalid Token: expires_in must be positive",
                status_code=500,
                errors=[{"status": 500, "code": 0, "title": "Invalid Token"}],
            )

        ttl = self.cache_ttl_for(grant.expires_in)
        if ttl < 1:
            logger.warning(
                "Token lifetime too short to cache",
                stage=Stage.CREDENTIALS.value,
                expires_in=grant.expires_in,
            )
        else:
            await self._cache.set(CACHE_KEY_AMADEUS_TOKEN, grant.access_token, ttl)
            logger.info(
                "Access token obtained and cached",
                stage=Stage.CREDENTIALS.value,
                expires_in=grant.expires_in,
                cache_ttl=ttl,
            )

        return grant.access_token

    async def _fetch_token(self) -> TokenResponse:
        logger.debug(
            "Requesting OAuth2 token",
            stage=Stage.CREDENTIALS.value,
            url=f"{self._settings.AMADEUS_BASE_URL}{OAUTH_TOKEN_PATH}",
        )
        try:
            response = await self._http.post(
                OAUTH_TOKEN_PATH,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._settings.AMADEUS_API_KEY,
                    "client_secret": self._settings.AMADEUS_API_SECRET,
                },
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            raise error_from_transport(e) from e

        if response.is_error:
            raise error_from_response(response)

        try:
            return TokenResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise ProviderApiError(
                "Invalid Token: token endpoint returned an unreadable body",
                status_code=500,
                errors=[{"status": 500, "code": 0, "title": "Invalid Token", "detail": str(e)}],
            ) from e

    async def invalidate_token(self) -> None:
        await self._cache.delete(CACHE_KEY_AMADEUS_TOKEN)
        logger.info("Cached access token invalidated", stage=Stage.CREDENTIALS.value)
