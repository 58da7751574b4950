"""ORM models package export."""

from medsim.models.administration import Administration, AdministrationStatus
from medsim.models.audit_event import AuditEvent
from medsim.models.medication_link import MedicationLink, StartAfter
from medsim.models.medicine import Medicine
from medsim.models.patient import Patient
from medsim.models.prescription import Prescription, ScheduleState
from medsim.models.protocol_instance import ProtocolInstance, ProtocolState
from medsim.models.user import User, UserRole

__all__ = [
    "Administration",
    "AdministrationStatus",
    "AuditEvent",
    "MedicationLink",
    "Medicine",
    "Patient",
    "Prescription",
    "ProtocolInstance",
    "ProtocolState",
    "ScheduleState",
    "StartAfter",
    "User",
    "UserRole",
]
