"""
Verification Store

Supabase persistence for verification sessions, their per-location
results, and the pricing configuration chosen for a session.

Tables: verification_sessions, verification_results, pricing_configurations.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client

from haulquote.models import PricingLogic, ServiceAreaResult, ServiceAreaVerificationData

logger = logging.getLogger(__name__)


class VerificationStoreError(Exception):
    """A Supabase write or read that did not complete. session_id is set when the session row exists."""

    def __init__(self, message: str, session_id: Optional[str] = None):
        super().__init__(message)
        self.session_id = session_id


def result_to_row(session_id: str, result: ServiceAreaResult) -> Dict[str, Any]:
    """Map a verification result onto a verification_results row. Blank values are stored as NULL."""
    return {
        'session_id': session_id,
        'company_name': result.company_name or None,
        'address': result.address,
        'city': result.city,
        'state': result.state,
        'zip_code': result.zip_code or None,
        'status': result.status,
        'reason': result.reason or None,
        'bin_quantity': result.bin_quantity or 1,
        'container_size': result.container_size or None,
        'equipment_type': result.equipment_type or None,
        'material_type': result.material_type or 'Solid Waste',
        'frequency': result.frequency or None,
        'add_ons': result.add_ons or None,
        'division': result.division or None,
        'service_region': result.service_region or None,
        'franchise_fee': result.franchise_fee or None,
        'latitude': result.latitude or None,
        'longitude': result.longitude or None,
    }


def save_verification_session(
    client: Client,
    session_name: str,
    verification_data: ServiceAreaVerificationData,
) -> str:
    """Insert the session row, then every result in a single bulk insert. Returns the session id."""
    response = client.table('verification_sessions').insert({
        'session_name': session_name,
        'total_processed': verification_data.total_processed,
        'serviceable_count': verification_data.serviceable_count,
        'not_serviceable_count': verification_data.not_serviceable_count,
        'manual_review_count': verification_data.manual_review_count,
    }).execute()

    if not response.data:
        raise VerificationStoreError('Failed to create session')

    session_id = response.data[0]['id']
    logger.info(f"Created verification session {session_id} ({session_name})")

    rows = [result_to_row(session_id, result) for result in verification_data.results]
    if not rows:
        return session_id

    try:
        client.table('verification_results').insert(rows).execute()
    except Exception as e:
        logger.error(f"Error saving {len(rows)} results for session {session_id}: {e}")
        raise VerificationStoreError(f"Failed to save verification results: {e}", session_id=session_id) from e

    logger.info(f"Saved {len(rows)} verification results for session {session_id}")
    return session_id


def get_verification_session(client: Client, session_id: str) -> Optional[Dict[str, Any]]:
    """The session row with its results (oldest first), or None if the session does not exist."""
    session_response = client.table('verification_sessions').select('*').eq('id', session_id).execute()
    if not session_response.data:
        return None

    results_response = client.table('verification_results').select('*').eq(
        'session_id', session_id
    ).order('created_at').execute()

    return {
        'session': session_response.data[0],
        'results': results_response.data or [],
    }


def update_result_status(client: Client, result_id: str, status: str, reason: Optional[str] = None) -> bool:
    """Returns False when no result row has this id."""
    response = client.table('verification_results').update({
        'status': status,
        'reason': reason or None,
    }).eq('id', result_id).execute()

    return bool(response.data)


def get_recent_sessions(client: Client, limit: int = 10) -> List[Dict[str, Any]]:
    response = client.table('verification_sessions').select('*').order(
        'created_at', desc=True
    ).limit(limit).execute()

    return response.data or []


def save_pricing_configuration(
    client: Client,
    session_id: str,
    pricing_logic: PricingLogic,
    custom_config: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    response = client.table('pricing_configurations').insert({
        'session_id': session_id,
        'pricing_logic': pricing_logic.model_dump(mode='json'),
        'custom_config': custom_config or None,
    }).execute()

    if not response.data:
        raise VerificationStoreError('Failed to save pricing configuration', session_id=session_id)

    return response.data[0]


def get_pricing_configuration(client: Client, session_id: str) -> Optional[Dict[str, Any]]:
    response = client.table('pricing_configurations').select('*').eq('session_id', session_id).execute()
    return response.data[0] if response.data else None


def update_pricing_configuration(
    client: Client,
    config_id: str,
    pricing_logic: PricingLogic,
    custom_config: Optional[Dict[str, Any]] = None,
) -> Optional[Dict[str, Any]]:
    response = client.table('pricing_configurations').update({
        'pricing_logic': pricing_logic.model_dump(mode='json'),
        'custom_config': custom_config or None,
        'updated_at': datetime.now(timezone.utc).isoformat(),
    }).eq('id', config_id).execute()

    return response.data[0] if response.data else None


def load_pricing_logic(client: Client, session_id: str) -> Optional[PricingLogic]:
    """The stored pricing logic for a session, parsed back into a PricingLogic."""
    row = get_pricing_configuration(client, session_id)
    if row is None or not row.get('pricing_logic'):
        return None
    return PricingLogic.model_validate(row['pricing_logic'])
