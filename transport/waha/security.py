"""
WAHA Signature Verification

SECURITY BOUNDARY - Verify the WAHA webhook HMAC.
No bot imports. No retries. No logic.
"""

import hashlib
import hmac
from typing import Optional

from fastapi import HTTPException, Request, status

SIGNATURE_HEADER = "X-Webhook-Hmac"
ALGORITHM_HEADER = "X-Webhook-Hmac-Algorithm"


class SignatureVerificationError(Exception):
    """Signature verification failed."""
    pass


def compute_signature(body: bytes, secret: str) -> str:
    return hmac.new(
        key=secret.encode("utf-8"),
        msg=body,
        digestmod=hashlib.sha512,
    ).hexdigest()


async def verify_signature(
    request: Request,
    body: bytes,
    secret: Optional[str] = None,
) -> bool:
    """
    Verify the HMAC-SHA512 signature WAHA attaches to webhook calls.

    WAHA sends:
    - X-Webhook-Hmac header with hex HMAC of the raw body
    - X-Webhook-Hmac-Algorithm: sha512

    Verification is skipped when no secret is configured.

    Raises:
        HTTPException(401): Missing signature
        HTTPException(403): Invalid signature
        SignatureVerificationError: Unsupported algorithm

    Returns:
        True if the signature was checked, False if skipped
    """
    if not secret:
        return False

    signature = request.headers.get(SIGNATURE_HEADER)
    if not signature:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {SIGNATURE_HEADER} header",
        )

    algorithm = request.headers.get(ALGORITHM_HEADER, "sha512").lower()
    if algorithm != "sha512":
        raise SignatureVerificationError(f"Unsupported HMAC algorithm: {algorithm}")

    # Constant-time compare
    if not hmac.compare_digest(signature.lower(), compute_signature(body, secret)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid signature",
        )
    return True
