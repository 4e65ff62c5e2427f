"""
Validation and normalization of outgoing chat requests
"""
from typing import Any, Dict, Optional

from .identity import IdentityProvider
from .models import ChatRequest, ResponseMode
from ...core.error_handling import ErrorHandler, ErrorContext


def build_request_payload(
    request: ChatRequest,
    response_mode: ResponseMode,
    identity_provider: IdentityProvider,
    context: Optional[ErrorContext] = None
) -> Dict[str, Any]:
    """
    Validate a request and build the JSON body sent to the backend

    Args:
        request: Caller's request
        response_mode: Mode the body is built for, overrides request.response_mode
        identity_provider: Supplies `user` when the request has none
        context: Error context for logging

    Returns:
        Wire body with query, response_mode, user, inputs and, when set,
        conversation_id and files

    Raises:
        ChatClientError: VALIDATION_ERROR when the query is empty after trimming
    """
    query = (request.query or "").strip()
    if not query:
        raise ErrorHandler.handle_validation_error(context or ErrorContext())

    payload = {
        "query": query,
        "response_mode": ResponseMode(response_mode).value,
        "user": request.user or identity_provider.get_user_id(),
        "inputs": dict(request.inputs or {}),
    }
    if request.conversation_id:
        payload["conversation_id"] = request.conversation_id
    if request.files:
        payload["files"] = list(request.files)
    return payload
