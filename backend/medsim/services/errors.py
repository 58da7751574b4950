"""Service-layer errors with stable codes for the API layer."""

from __future__ import annotations


class ProtocolError(ValueError):
    """Configuration or sequencing error reported to the caller synchronously."""

    code = "PROTOCOL_ERROR"

    def __init__(self, message: str, **details: object) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(ProtocolError):
    code = "NOT_FOUND"


class PatientMismatchError(ProtocolError):
    code = "PATIENT_MISMATCH"


class MedicineMismatchError(ProtocolError):
    code = "MEDICINE_MISMATCH"


class DuplicateProtocolError(ProtocolError):
    code = "DUPLICATE"


class FollowMedicineNotFoundError(ProtocolError):
    code = "FOLLOW_MEDICINE_NOT_FOUND"


class LinkInUseError(ProtocolError):
    code = "LINK_IN_USE"


class InvalidLinkError(ProtocolError):
    code = "INVALID_LINK"


__all__ = [
    "DuplicateProtocolError",
    "FollowMedicineNotFoundError",
    "InvalidLinkError",
    "LinkInUseError",
    "MedicineMismatchError",
    "NotFoundError",
    "PatientMismatchError",
    "ProtocolError",
]
