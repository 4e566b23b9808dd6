import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.concurrency import run_in_threadpool

from country_sync.config import Settings
from country_sync.dependencies import get_refresh_service, get_renderer, get_settings, get_store
from country_sync.errors import ExternalSourceUnavailable
from country_sync.renderer import SummaryRenderer
from country_sync.schemas import (
    CountryResponse,
    ErrorResponse,
    MessageResponse,
    RefreshResponse,
    StatusResponse,
)
from country_sync.services import RefreshService
from country_sync.store import CountryStore

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND = {"error": "Country not found"}


# ============================================================================
# GET / - Service descriptor
# ============================================================================

@router.get("/")
async def index(settings: Settings = Depends(get_settings)):
    return {
        "message": "Country Currency API is running",
        "version": settings.VERSION,
        "endpoints": {
            "refresh": "POST /countries/refresh",
            "getAllCountries": "GET /countries",
            "filterByRegion": "GET /countries?region=Africa",
            "filterByCurrency": "GET /countries?currency=NGN",
            "sortByGDP": "GET /countries?sort=gdp_desc",
            "getCountryByName": "GET /countries/:name",
            "deleteCountry": "DELETE /countries/:name",
            "getStatus": "GET /status",
            "getSummaryImage": "GET /countries/image",
        },
    }


# ============================================================================
# POST /countries/refresh - Refresh all countries from external APIs
# ============================================================================

@router.post(
    "/countries/refresh",
    response_model=RefreshResponse,
    status_code=status.HTTP_200_OK,
    responses={
        503: {"model": ErrorResponse, "description": "External API unavailable"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)
async def refresh_countries(service: RefreshService = Depends(get_refresh_service)):
    try:
        outcome = await service.refresh()
    except ExternalSourceUnavailable as e:
        logger.warning(f"Refresh aborted: {e.details}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": e.error, "details": e.details},
        )

    return RefreshResponse(
        message="Countries refreshed successfully",
        total_countries=outcome.total_countries,
        last_refreshed_at=outcome.last_refreshed_at,
    )


# ============================================================================
# GET /countries - Get all countries with optional filters and sorting
# ============================================================================

@router.get(
    "/countries",
    response_model=List[CountryResponse],
    responses={500: {"model": ErrorResponse, "description": "Internal server error"}},
)
async def get_countries(
    region: Optional[str] = None,
    currency: Optional[str] = None,
    sort: Optional[str] = None,
    store: CountryStore = Depends(get_store),
):
    countries = await store.list_countries(region=region, currency=currency, sort=sort)
    return [CountryResponse.model_validate(c) for c in countries]


# ============================================================================
# GET /countries/image - Serve summary image
# ============================================================================

@router.get(
    "/countries/image",
    response_class=Response,
    responses={
        200: {"content": {"image/png": {}}, "description": "Summary image with top countries"},
        404: {"model": ErrorResponse, "description": "Image not found"},
        500: {"model": ErrorResponse, "description": "Image could not be read"},
    },
)
async def get_summary_image(renderer: SummaryRenderer = Depends(get_renderer)):
    if not renderer.exists():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "Summary image not found"},
        )

    try:
        content = await run_in_threadpool(renderer.read_bytes)
    except OSError as e:
        logger.error(f"Could not read summary image: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Internal server error"},
        )

    return Response(content=content, media_type="image/png")


# ============================================================================
# GET /countries/:name - Get a single country by name
# ============================================================================

@router.get(
    "/countries/{name}",
    response_model=CountryResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Country not found"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)
async def get_country_by_name(name: str, store: CountryStore = Depends(get_store)):
    country = await store.get_country(name)
    if not country:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return CountryResponse.model_validate(country)


# ============================================================================
# DELETE /countries/:name - Delete a country by name
# ============================================================================

@router.delete(
    "/countries/{name}",
    response_model=MessageResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Country not found"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)
async def delete_country(name: str, store: CountryStore = Depends(get_store)):
    deleted = await store.delete_country(name)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return MessageResponse(message="Country deleted successfully")


# ============================================================================
# GET /status - Get system status
# ============================================================================

@router.get(
    "/status",
    response_model=StatusResponse,
    responses={500: {"model": ErrorResponse, "description": "Internal server error"}},
)
async def get_status(store: CountryStore = Depends(get_store)):
    metadata = await store.get_metadata()
    return StatusResponse(
        total_countries=metadata.total_countries,
        last_refreshed_at=metadata.last_refreshed_at,
    )
