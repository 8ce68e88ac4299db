from .client import AmadeusClient, create_http_client
from .provider import AmadeusFlightProvider
from .token_manager import AmadeusTokenManager

__all__ = [
    "AmadeusClient",
    "AmadeusFlightProvider",
    "AmadeusTokenManager",
    "create_http_client",
]
