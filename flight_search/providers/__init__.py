from .base_provider import FlightProvider

__all__ = ["FlightProvider"]
