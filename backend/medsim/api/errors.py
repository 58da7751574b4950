"""Translate service errors and guard rejections into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status

from medsim.services.administration_guard import GuardDecision, RejectionCode
from medsim.services.errors import ProtocolError

_SERVICE_STATUS = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "FOLLOW_MEDICINE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PATIENT_MISMATCH": status.HTTP_400_BAD_REQUEST,
    "MEDICINE_MISMATCH": status.HTTP_400_BAD_REQUEST,
    "INVALID_LINK": status.HTTP_400_BAD_REQUEST,
    "DUPLICATE": status.HTTP_409_CONFLICT,
    "LINK_IN_USE": status.HTTP_409_CONFLICT,
}

_REJECTION_STATUS = {
    RejectionCode.PRESCRIPTION_NOT_FOUND: status.HTTP_400_BAD_REQUEST,
    RejectionCode.PATIENT_ID_MISMATCH: status.HTTP_409_CONFLICT,
    RejectionCode.MEDICINE_ID_MISMATCH: status.HTTP_409_CONFLICT,
    RejectionCode.FOLLOW_UP_BLOCKED: status.HTTP_409_CONFLICT,
    RejectionCode.PROTOCOL_TIMING_TOO_EARLY: status.HTTP_409_CONFLICT,
    RejectionCode.PRESCRIPTION_VERIFICATION_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RejectionCode.VALIDATION_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def service_http_error(exc: ProtocolError) -> HTTPException:
    """Build the HTTPException for a service-layer error."""
    return HTTPException(
        status_code=_SERVICE_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST),
        detail={**exc.details, "error": exc.code, "message": exc.message},
    )


def rejection_http_error(decision: GuardDecision) -> HTTPException:
    """Build the HTTPException for a guard rejection."""
    code = decision.code or RejectionCode.VALIDATION_FAILED
    return HTTPException(
        status_code=_REJECTION_STATUS[code],
        detail={**decision.details, "error": code.value, "message": decision.message},
    )


__all__ = ["rejection_http_error", "service_http_error"]
