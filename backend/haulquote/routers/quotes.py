from fastapi import APIRouter, HTTPException, Depends, File, Form, UploadFile
from typing import Dict, Optional
import logging

from haulquote.models import BulkQuoteRequest, PricingLogic, QuoteRequest
from haulquote.utils.auth import get_optional_user
from haulquote.utils.csv_parser import parse_upload
from haulquote.utils.database import get_supabase_client
from haulquote.utils.pricing_engine import PricingEngine
from haulquote.utils.regional_rates import default_pricing_logic, load_regional_pricing_data
from haulquote.utils.sentry_utils import add_operation_breadcrumb, track_quote_failures
from haulquote.utils.verification_store import load_pricing_logic

router = APIRouter(prefix="/api/quotes", tags=["Quotes"])
logger = logging.getLogger(__name__)


def resolve_pricing_logic(
    pricing_logic: Optional[PricingLogic],
    session_id: Optional[str],
    user: Optional[Dict],
) -> PricingLogic:
    """Inline logic wins, then the logic saved for the session, then the bundled regional sheets"""
    if pricing_logic is not None:
        return pricing_logic

    if session_id:
        # saved configurations are only readable by their owner
        if user is None:
            raise HTTPException(status_code=401, detail="Sign in to quote with a saved pricing configuration")
        supabase = get_supabase_client(user.get('access_token'))
        stored = load_pricing_logic(supabase, session_id)
        if stored is None:
            raise HTTPException(status_code=404, detail=f"No pricing configuration saved for session {session_id}")
        return stored

    return default_pricing_logic()


def build_engine(pricing_logic: PricingLogic) -> PricingEngine:
    engine = PricingEngine(pricing_logic)
    if pricing_logic.type == 'regional-brain' and pricing_logic.regional_pricing_data is None:
        engine.set_regional_pricing_data(load_regional_pricing_data())
    return engine


@router.post("")
async def create_quote(body: QuoteRequest, user: Optional[Dict] = Depends(get_optional_user)):
    """Price a single service request"""
    try:
        pricing_logic = resolve_pricing_logic(body.pricing_logic, body.session_id, user)
        return build_engine(pricing_logic).generate_quote(body.service_request)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating quote: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate quote")


@router.post("/bulk")
async def create_bulk_quotes(body: BulkQuoteRequest, user: Optional[Dict] = Depends(get_optional_user)):
    """Price a batch of service requests. Requests that can't be priced come back in failed_quotes"""
    try:
        pricing_logic = resolve_pricing_logic(body.pricing_logic, body.session_id, user)
        engine = build_engine(pricing_logic)
        if body.service_area_data is not None:
            engine.set_service_area_data(body.service_area_data)

        add_operation_breadcrumb(
            'quotes',
            f'Bulk quoting {len(body.service_requests)} requests',
            data={'pricing_logic': pricing_logic.type, 'session_id': body.session_id}
        )

        result = engine.generate_bulk_quotes(body.service_requests)
        track_quote_failures(result.failed_quotes, body.session_id)
        return result

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating bulk quotes: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate quotes")


@router.post("/upload")
async def upload_quotes(
    file: UploadFile = File(...),
    session_id: Optional[str] = Form(None),
    user: Optional[Dict] = Depends(get_optional_user)
):
    """Price every row of an uploaded CSV of service requests"""
    try:
        content = await file.read()
        try:
            csv_text = content.decode('utf-8-sig')
        except UnicodeDecodeError:
            raise HTTPException(status_code=400, detail="File must be UTF-8 encoded CSV")

        service_requests = parse_upload(csv_text)
        if not service_requests:
            raise HTTPException(status_code=400, detail="No service requests found in file")

        logger.info(f"Parsed {len(service_requests)} service requests from {file.filename}")

        pricing_logic = resolve_pricing_logic(None, session_id, user)
        result = build_engine(pricing_logic).generate_bulk_quotes(service_requests)
        track_quote_failures(result.failed_quotes, session_id)
        return result

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error processing quote upload: {e}")
        raise HTTPException(status_code=500, detail="Failed to process upload")
