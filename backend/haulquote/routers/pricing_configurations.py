from fastapi import APIRouter, HTTPException, Depends, File, UploadFile
from typing import Dict
import logging

from haulquote.models import PricingConfigurationCreate, PricingConfigurationUpdate
from haulquote.utils.auth import get_current_user
from haulquote.utils.csv_parser import parse_regional_rate_sheets
from haulquote.utils.database import get_supabase_client
from haulquote.utils.regional_rates import load_regional_pricing_data
from haulquote.utils import verification_store
from haulquote.utils.verification_store import VerificationStoreError

router = APIRouter(prefix="/api/pricing-configurations", tags=["Pricing Configurations"])
logger = logging.getLogger(__name__)


@router.get("/regional-rates")
async def get_regional_rates():
    """Bundled NTX / STX / CTX regional rate sheets"""
    try:
        return load_regional_pricing_data()
    except (OSError, ValueError) as e:
        logger.error(f"Error loading regional rate sheets: {e}")
        raise HTTPException(status_code=500, detail="Failed to load regional rate sheets")


@router.post("/regional-rates/upload")
async def upload_regional_rates(file: UploadFile = File(...)):
    """Parse an uploaded regional rate workbook export into rate sheets"""
    try:
        content = await file.read()
        try:
            csv_text = content.decode('utf-8-sig')
        except UnicodeDecodeError:
            raise HTTPException(status_code=400, detail="File must be UTF-8 encoded CSV")

        data = parse_regional_rate_sheets(csv_text)
        if not data.rate_sheets:
            raise HTTPException(status_code=400, detail="No regional rate sheets found in file")

        return data

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error parsing regional rate sheets: {e}")
        raise HTTPException(status_code=500, detail="Failed to parse regional rate sheets")


@router.post("")
async def create_pricing_configuration(body: PricingConfigurationCreate, user: Dict = Depends(get_current_user)):
    """Save the pricing logic chosen for a verification session"""
    try:
        supabase = get_supabase_client(user.get('access_token'))
        return verification_store.save_pricing_configuration(
            supabase, body.session_id, body.pricing_logic, body.custom_config
        )

    except VerificationStoreError as e:
        logger.error(f"Error saving pricing configuration: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Error saving pricing configuration: {e}")
        raise HTTPException(status_code=500, detail="Failed to save pricing configuration")


@router.get("/{session_id}")
async def get_pricing_configuration(session_id: str, user: Dict = Depends(get_current_user)):
    """Pricing configuration saved for a session"""
    try:
        supabase = get_supabase_client(user.get('access_token'))
        config = verification_store.get_pricing_configuration(supabase, session_id)

        if config is None:
            raise HTTPException(status_code=404, detail="Pricing configuration not found")

        return config

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching pricing configuration for {session_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch pricing configuration")


@router.put("/{config_id}")
async def update_pricing_configuration(
    config_id: str,
    body: PricingConfigurationUpdate,
    user: Dict = Depends(get_current_user)
):
    """Replace the pricing logic of an existing configuration"""
    try:
        supabase = get_supabase_client(user.get('access_token'))
        config = verification_store.update_pricing_configuration(
            supabase, config_id, body.pricing_logic, body.custom_config
        )

        if config is None:
            raise HTTPException(status_code=404, detail="Pricing configuration not found")

        return config

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating pricing configuration {config_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update pricing configuration")
