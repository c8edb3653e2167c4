"""discverify package root.

Expose the verification API at package level for convenient imports. Keep
this file small and explicit to make `import discverify` lightweight.
"""

from .common.exceptions import ContractViolation, OpenError, ReferenceLookupError, VolumeOpenError
from .common.models import (
    Problem,
    ReferenceStatus,
    ScanState,
    Severity,
    VerificationOptions,
    VerificationResult,
)
from .core.session import VerificationSession, open_session
from .verifier import VolumeVerifier

__version__ = "1.0.0"

__all__ = [
    "ContractViolation",
    "OpenError",
    "Problem",
    "ReferenceLookupError",
    "ReferenceStatus",
    "ScanState",
    "Severity",
    "VerificationOptions",
    "VerificationResult",
    "VerificationSession",
    "VolumeOpenError",
    "VolumeVerifier",
    "open_session",
]
