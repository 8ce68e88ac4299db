"""
Flight Search Routes

``GET /search/flights?origin=JFK&destination=LAX&departureDate=2025-12-25``

Query parameters use camelCase (``departureDate``, ``maxResults``,
``includedAirlines``); airline lists may be comma separated or repeated.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError

from flight_search.application.api.dependencies import SearchServiceDep
from flight_search.core.config.constants import Stage
from flight_search.core.exceptions import SearchValidationError
from flight_search.core.logging.logger import get_logger
from flight_search.search.models import SearchFlightsRequest, SearchFlightsResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/search", tags=["Search"])


def parse_search_request(request: Request) -> SearchFlightsRequest:
    """
    STAGE-1.0: Build and shape-check the search request from the query string.

    Raises:
        SearchValidationError: Missing or malformed parameters (400)
    """
    params = request.query_params
    raw = {}
    for key in params.keys():
        values = params.getlist(key)
        raw[key] = values if len(values) > 1 else values[0]

    try:
        return SearchFlightsRequest.model_validate(raw)
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in e.errors(include_url=False)
        ]
        logger.info(
            "Rejected search request",
            stage=Stage.REQUEST_VALIDATION.value,
            errors=errors,
        )
        raise SearchValidationError(
            "Invalid search parameters", details={"errors": errors}
        ) from e


SearchRequestDep = Annotated[SearchFlightsRequest, Depends(parse_search_request)]


@router.get("/flights", response_model=SearchFlightsResponse)
async def search_flights(search: SearchRequestDep, service: SearchServiceDep):
    return await service.search_flights(search)
