"""Sentry utilities for consistent error tracking and context management."""

from fastapi import HTTPException
import sentry_sdk
from sentry_sdk import set_user, set_context, add_breadcrumb
from functools import wraps
from typing import Any, Dict, List, Optional
import logging
import inspect

from haulquote.models import Quote

logger = logging.getLogger(__name__)


def capture_error_with_context(
    error: Exception,
    operation: str,
    user_data: Optional[Dict[str, Any]] = None,
    extra_context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Capture an exception with rich context for Sentry.

    Args:
        error: The exception to capture
        operation: The operation being performed (e.g., "save_verification_session", "bulk_quotes")
        user_data: Optional user information dict with keys like 'id', 'email'
        extra_context: Optional additional context data
    """
    frame = inspect.currentframe()
    caller_frame = frame.f_back if frame else None

    context = {
        "operation": operation,
        "file": caller_frame.f_code.co_filename if caller_frame else "unknown",
        "function": caller_frame.f_code.co_name if caller_frame else "unknown",
        "line": caller_frame.f_lineno if caller_frame else 0,
        "error_type": type(error).__name__,
        "error_message": str(error),
    }

    if user_data:
        context.update({
            "user_id": user_data.get('id'),
            "user_email": user_data.get('email'),
        })
        set_user({
            "id": user_data.get('id'),
            "email": user_data.get('email'),
        })

    if extra_context:
        context.update(extra_context)

    sentry_sdk.capture_exception(error, contexts={
        operation: context
    })


def add_operation_breadcrumb(
    operation: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
    level: str = 'info'
) -> None:
    """
    Add a breadcrumb for tracking operation flow.

    Args:
        operation: The operation category (e.g., 'quotes', 'verification', 'database')
        message: Description of what's happening
        data: Optional additional data
        level: Log level ('debug', 'info', 'warning', 'error', 'critical')
    """
    breadcrumb_data = {
        'category': operation,
        'message': message,
        'level': level,
    }

    if data:
        breadcrumb_data['data'] = data

    add_breadcrumb(**breadcrumb_data)


def track_quote_failures(
    failed_quotes: List[Quote],
    session_id: Optional[str] = None
) -> None:
    """
    Report failed quotes from a bulk run as a single Sentry warning.

    Failed quotes are a normal response, not an exception, so they would
    otherwise never reach Sentry. Reasons are grouped to keep the event small.
    """
    if not failed_quotes:
        return

    reasons: Dict[str, int] = {}
    for quote in failed_quotes:
        reason = quote.failure_reason or 'Unknown error'
        reasons[reason] = reasons.get(reason, 0) + 1

    details = {
        "session_id": session_id,
        "failed_count": len(failed_quotes),
        "reasons": reasons,
    }

    add_operation_breadcrumb(
        'quotes',
        f'{len(failed_quotes)} quotes failed',
        data=details,
        level='warning'
    )
    set_context("quote_failures", details)

    message = f"{len(failed_quotes)} quotes failed in session {session_id or 'n/a'}"
    logger.warning(message)

    sentry_sdk.capture_message(message, level='warning')


def sentry_track_endpoint(operation_name: str):
    """
    Decorator to automatically track endpoint execution with Sentry.

    Args:
        operation_name: Name of the operation for context

    Usage:
        @sentry_track_endpoint("save_verification_session")
        async def save_session(...):
            ...
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            user = kwargs.get('user')

            add_operation_breadcrumb(
                operation_name,
                f'Starting {operation_name}',
                data={
                    'user_id': user.get('id') if user else None,
                    'user_email': user.get('email') if user else None
                }
            )

            try:
                result = await func(*args, **kwargs)

                add_operation_breadcrumb(
                    operation_name,
                    f'Completed {operation_name}',
                    level='info'
                )

                return result

            except HTTPException:
                # already handled and reported by the endpoint
                raise
            except Exception as e:
                capture_error_with_context(
                    e,
                    operation_name,
                    user_data=user,
                    extra_context={
                        'kwargs_keys': list(kwargs.keys())
                    }
                )
                raise

        return wrapper
    return decorator
