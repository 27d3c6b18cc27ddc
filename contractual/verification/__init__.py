"""
Producer-side verification.

Each contract becomes a VerificationCase that drives the real producer with the
contract's example request and checks the answer against the response pattern.
"""

from .generator import (
    VerificationCase,
    VerificationResult,
    build_verification,
    build_verification_suite,
    verify_all,
)
from .producers import AsgiProducer, CallableProducer, HttpProducer, Producer, as_producer

__all__ = [
    "VerificationCase", "VerificationResult", "build_verification", "build_verification_suite", "verify_all",
    "Producer", "CallableProducer", "AsgiProducer", "HttpProducer", "as_producer",
]
