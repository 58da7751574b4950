"""Service layer exports."""
from medsim.services import (
    administration_guard,
    administration_service,
    audit_service,
    auth_service,
    medication_link_service,
    prescription_service,
    protocol_activator,
    protocol_instance_service,
    user_service,
)

__all__ = [
    "administration_guard",
    "administration_service",
    "audit_service",
    "auth_service",
    "medication_link_service",
    "prescription_service",
    "protocol_activator",
    "protocol_instance_service",
    "user_service",
]
