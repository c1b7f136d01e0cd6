from fastapi import Depends, FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import math
import time
import uuid
from typing import Any, Dict, List, Optional

from config import get_settings
from logging_config import setup_logging, get_logger, log_error
from data_sources.error_handling import (
    AuthenticationFailed,
    FacilityQueryFailed,
    InvalidQueryParameters,
    check_service_configuration,
)
from data_sources.identity import SupabaseTokenVerifier, extract_bearer_token
from data_sources.overpass_client import OverpassClient
from hospitals.service import HospitalService

settings = get_settings()

setup_logging(level=settings.log_level, json_format=settings.log_json)
logger = get_logger(__name__)

DEFAULT_RADIUS_M = 5000
MIN_RADIUS_M = 100
MAX_RADIUS_M = 50000

app = FastAPI(
    title="MediGuardia Backend API",
    description="Nearby hospital discovery with specialty tagging",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_hospital_service: Optional[HospitalService] = None
_token_verifier: Optional[SupabaseTokenVerifier] = None


def get_hospital_service() -> HospitalService:
    global _hospital_service
    if _hospital_service is None:
        _hospital_service = HospitalService(OverpassClient.from_settings(settings))
    return _hospital_service


def get_token_verifier() -> SupabaseTokenVerifier:
    global _token_verifier
    if _token_verifier is None:
        _token_verifier = SupabaseTokenVerifier.from_settings(settings)
    return _token_verifier


def require_user(authorization: Optional[str] = Header(default=None),
                 verifier: SupabaseTokenVerifier = Depends(get_token_verifier)) -> Dict[str, Any]:
    """Resolve the bearer token to a user, or fail with 401."""
    token = extract_bearer_token(authorization)
    if not token:
        raise AuthenticationFailed("No authentication token provided")
    return verifier.verify(token)


def parse_search_params(lat: Optional[str], lng: Optional[str],
                        radius: Optional[str]) -> tuple:
    """
    Validate raw query parameters for a hospital search.

    Returns:
        (lat, lng, radius_m)

    Raises:
        InvalidQueryParameters: describing the first violated constraint
    """
    try:
        lat_value = float(lat)
        lng_value = float(lng)
    except (TypeError, ValueError):
        lat_value = lng_value = math.nan
    if not (math.isfinite(lat_value) and math.isfinite(lng_value)):
        raise InvalidQueryParameters(
            "Invalid coordinates", "lat and lng are required and must be valid numbers"
        )

    if not -90 <= lat_value <= 90:
        raise InvalidQueryParameters("Invalid latitude", "Latitude must be between -90 and 90")
    if not -180 <= lng_value <= 180:
        raise InvalidQueryParameters("Invalid longitude", "Longitude must be between -180 and 180")

    if radius is None or not radius.strip():
        radius_m = DEFAULT_RADIUS_M
    else:
        try:
            radius_m = int(radius.strip())
        except ValueError:
            raise InvalidQueryParameters(
                "Invalid radius", "Radius must be an integer number of meters"
            ) from None
    if radius_m < MIN_RADIUS_M or radius_m > MAX_RADIUS_M:
        raise InvalidQueryParameters(
            "Invalid radius", f"Radius must be between {MIN_RADIUS_M} and {MAX_RADIUS_M} meters"
        )

    return lat_value, lng_value, radius_m


@app.exception_handler(InvalidQueryParameters)
async def invalid_parameters_handler(request: Request, exc: InvalidQueryParameters):
    return JSONResponse(status_code=400, content={"error": exc.error, "message": exc.message})


@app.exception_handler(AuthenticationFailed)
async def authentication_failed_handler(request: Request, exc: AuthenticationFailed):
    return JSONResponse(status_code=401, content={"error": "Unauthorized", "message": exc.message})


@app.exception_handler(FacilityQueryFailed)
async def facility_query_failed_handler(request: Request, exc: FacilityQueryFailed):
    log_error(logger, "upstream", f"Error fetching hospitals: {exc}",
              api_name=exc.api_name, status_code=exc.status_code)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "message": str(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={"error": "Not found", "message": f"Route {request.url.path} not found"},
        )
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail), "message": str(exc.detail)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": str(exc) or "An unexpected error occurred"},
    )


@app.get("/")
def root():
    """Service banner."""
    return {
        "service": "MediGuardia Backend API",
        "status": "running",
        "version": "1.0.0",
        "endpoints": {
            "hospitals": "/api/hospitals?lat=LAT&lng=LNG&radius=METERS",
            "health": "/health",
            "docs": "/docs"
        }
    }


@app.get("/health")
def health_check():
    """Liveness check with external service configuration status."""
    return {
        "status": "ok",
        "message": "MediGuardia Backend API is running",
        "checks": check_service_configuration(settings),
    }


@app.get("/api/hospitals")
def get_nearby_hospitals(lat: Optional[str] = None,
                         lng: Optional[str] = None,
                         radius: Optional[str] = None,
                         user: Dict[str, Any] = Depends(require_user),
                         service: HospitalService = Depends(get_hospital_service)) -> List[Dict[str, Any]]:
    """
    Hospitals near a point, nearest first.

    Parameters:
        lat, lng: Search origin
        radius: Search radius in meters (100-50000, default 5000)

    Returns:
        JSON array of {name, distance_km, address, lat, lng, fields, google_maps_url}
    """
    request_id = uuid.uuid4().hex[:12]
    lat_value, lng_value, radius_m = parse_search_params(lat, lng, radius)

    start_time = time.time()
    logger.info(f"Hospital search: {lat_value}, {lng_value} within {radius_m}m",
                extra={"request_id": request_id, "lat": lat_value, "lon": lng_value, "radius_m": radius_m})

    hospitals = service.get_nearby_hospitals((lat_value, lng_value), radius_m)

    logger.info(f"Returning {len(hospitals)} hospitals",
                extra={"request_id": request_id, "result_count": len(hospitals),
                       "response_time": round(time.time() - start_time, 3)})
    return [h.to_api_dict() for h in hospitals]


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
