"""WAHA Transport Layer - Module Exports"""

from .client import WAHAClient
from .normalize import (
    NormalizationError,
    extract_sender_id,
    normalize_message,
    should_skip,
)
from .schemas import (
    NormalizedMessage,
    WahaMessagePayload,
    WahaSessionStatusPayload,
    WahaWebhookEvent,
)
from .security import SignatureVerificationError, compute_signature, verify_signature

__all__ = [
    # Client
    "WAHAClient",
    # Schemas
    "NormalizedMessage",
    "WahaWebhookEvent",
    "WahaMessagePayload",
    "WahaSessionStatusPayload",
    # Normalization
    "normalize_message",
    "extract_sender_id",
    "should_skip",
    "NormalizationError",
    # Security
    "verify_signature",
    "compute_signature",
    "SignatureVerificationError",
]
