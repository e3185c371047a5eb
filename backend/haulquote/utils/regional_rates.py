"""Bundled regional rate sheets (NTX / STX / CTX) used when no pricing logic is supplied."""

import json
import logging
from pathlib import Path
from typing import Optional

from haulquote.models import PricingLogic, RegionalPricingData

logger = logging.getLogger(__name__)

REGIONAL_RATE_SHEETS_JSON = Path(__file__).resolve().parent.parent / "data" / "regional_rate_sheets.json"

_regional_pricing_data: Optional[RegionalPricingData] = None


def load_regional_pricing_data() -> RegionalPricingData:
    global _regional_pricing_data

    if _regional_pricing_data is None:
        with REGIONAL_RATE_SHEETS_JSON.open(encoding="utf-8") as f:
            _regional_pricing_data = RegionalPricingData.model_validate(json.load(f))
        _regional_pricing_data.source = _regional_pricing_data.source or "bundled"
        logger.info(
            f"Loaded regional rate sheets: {[sheet.region for sheet in _regional_pricing_data.rate_sheets]}"
        )

    return _regional_pricing_data


def default_pricing_logic() -> PricingLogic:
    """Regional-brain logic over the bundled sheets."""
    return PricingLogic(type='regional-brain', regional_pricing_data=load_regional_pricing_data())
