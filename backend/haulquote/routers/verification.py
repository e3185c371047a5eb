from fastapi import APIRouter, HTTPException, Depends, File, Form, Query, UploadFile
from typing import Dict, List
import logging

from haulquote.models import (
    LocationRequest,
    ResultStatusUpdate,
    SaveSessionRequest,
    ValidateLocationsRequest,
)
from haulquote.utils.auth import get_current_user
from haulquote.utils.csv_parser import parse_csv
from haulquote.utils.database import get_supabase_client
from haulquote.utils.geocoding import batch_geocode
from haulquote.utils.sentry_utils import capture_error_with_context, sentry_track_endpoint
from haulquote.utils.service_area_validator import service_area_validator
from haulquote.utils import verification_store
from haulquote.utils.verification_store import VerificationStoreError

router = APIRouter(prefix="/api/verification", tags=["Verification"])
logger = logging.getLogger(__name__)


async def geocode_missing_coordinates(locations: List[LocationRequest]) -> List[LocationRequest]:
    """Fill in latitude/longitude for locations uploaded without them"""
    missing = [loc for loc in locations if loc.latitude is None or loc.longitude is None]
    if not missing:
        return locations

    addresses = [f"{loc.address}, {loc.city}, {loc.state} {loc.zip_code or ''}".strip() for loc in missing]
    results = await batch_geocode(addresses)

    geocoded = {}
    for location, result in zip(missing, results):
        # approximate coordinates would place the location in the wrong service area
        if result is not None and not result.is_fallback:
            geocoded[location.id] = location.model_copy(
                update={'latitude': result.latitude, 'longitude': result.longitude}
            )

    logger.info(f"Geocoded {len(geocoded)}/{len(missing)} locations")
    return [geocoded.get(loc.id, loc) for loc in locations]


@router.post("/validate")
async def validate_locations(body: ValidateLocationsRequest):
    """Check a list of locations against the service area"""
    try:
        locations = body.locations
        if body.geocode:
            locations = await geocode_missing_coordinates(locations)
        return service_area_validator.verify_locations(locations)

    except Exception as e:
        logger.error(f"Error validating locations: {e}")
        raise HTTPException(status_code=500, detail="Failed to validate locations")


@router.post("/upload")
async def upload_locations(file: UploadFile = File(...), geocode: bool = Form(False)):
    """Check every row of an uploaded CSV against the service area"""
    try:
        content = await file.read()
        try:
            csv_text = content.decode('utf-8-sig')
        except UnicodeDecodeError:
            raise HTTPException(status_code=400, detail="File must be UTF-8 encoded CSV")

        rows = parse_csv(csv_text)
        try:
            locations = service_area_validator.parse_location_requests(rows)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        if not locations:
            raise HTTPException(status_code=400, detail="No locations found in file")

        logger.info(f"Parsed {len(locations)} locations from {file.filename}")

        if geocode:
            locations = await geocode_missing_coordinates(locations)
        return service_area_validator.verify_locations(locations)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error processing location upload: {e}")
        raise HTTPException(status_code=500, detail="Failed to process upload")


@router.post("/sessions")
@sentry_track_endpoint("save_verification_session")
async def save_session(body: SaveSessionRequest, user: Dict = Depends(get_current_user)):
    """Persist a verification run: one session row plus all of its results"""
    try:
        supabase = get_supabase_client(user.get('access_token'))
        session_id = verification_store.save_verification_session(
            supabase, body.session_name, body.verification_data
        )
        return {"session_id": session_id}

    except VerificationStoreError as e:
        logger.error(f"Error saving verification session: {e}")
        capture_error_with_context(e, "save_verification_session", user_data=user,
                                   extra_context={"session_id": e.session_id})
        raise HTTPException(
            status_code=502,
            detail={"message": str(e), "session_id": e.session_id}
        )
    except Exception as e:
        logger.error(f"Error saving verification session: {e}")
        capture_error_with_context(e, "save_verification_session", user_data=user)
        raise HTTPException(status_code=500, detail="Failed to save verification session")


@router.get("/sessions")
async def list_sessions(limit: int = Query(10, ge=1, le=100), user: Dict = Depends(get_current_user)):
    """Most recent verification sessions"""
    try:
        supabase = get_supabase_client(user.get('access_token'))
        return verification_store.get_recent_sessions(supabase, limit)

    except Exception as e:
        logger.error(f"Error fetching verification sessions: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch verification sessions")


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, user: Dict = Depends(get_current_user)):
    """A verification session and its results"""
    try:
        supabase = get_supabase_client(user.get('access_token'))
        session = verification_store.get_verification_session(supabase, session_id)

        if session is None:
            raise HTTPException(status_code=404, detail="Verification session not found")

        return session

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching verification session {session_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch verification session")


@router.patch("/results/{result_id}/status")
async def update_status(result_id: str, body: ResultStatusUpdate, user: Dict = Depends(get_current_user)):
    """Manual review outcome for a single location"""
    try:
        supabase = get_supabase_client(user.get('access_token'))
        updated = verification_store.update_result_status(supabase, result_id, body.status, body.reason)

        if not updated:
            raise HTTPException(status_code=404, detail="Verification result not found")

        return {"success": True, "status": body.status}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating verification result {result_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update verification result")
