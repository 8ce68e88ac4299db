"""
Amadeus Wire Types

Only the OAuth token response is modelled. Flight offer payloads are
validated structurally in the provider and mapped straight to
``search.models``.
"""

from pydantic import BaseModel, ConfigDict

OAUTH_TOKEN_PATH = "/v1/security/oauth2/token"
FLIGHT_OFFERS_PATH = "/v2/shopping/flight-offers"


class TokenResponse(BaseModel):
    """Body of a successful client-credentials grant."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = ""
    expires_in: int = 0
    token_type: str | None = None
