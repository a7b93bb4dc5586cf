"""
Authentication gate.

Token issuance and verification mechanics live outside this service; the gate
only extracts the caller's token and asks the verifier held on
``app.state.token_verifier`` whether to let the request through.
"""

import hmac
import logging
from typing import Callable, Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

TokenVerifier = Callable[[str], bool]


def static_token_verifier(expected: str) -> TokenVerifier:
    """Verifier accepting exactly ``expected``."""

    def verify(token: str) -> bool:
        return hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))

    return verify


def extract_token(request: Request) -> Optional[str]:
    """Bearer token from the Authorization header, else the ``token`` cookie."""
    header = request.headers.get("authorization", "")
    if header.startswith("Bearer "):
        bearer = header[len("Bearer "):].strip()
        if bearer:
            return bearer
    return request.cookies.get("token") or None


async def require_auth(request: Request) -> None:
    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    verifier: TokenVerifier = request.app.state.token_verifier
    if not verifier(token):
        client_host = request.client.host if request.client else "unknown"
        logger.warning(f"Rejected token from {client_host} on {request.url.path}")
        raise HTTPException(status_code=401, detail="Invalid token")
