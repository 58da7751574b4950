"""Versioned API router."""

from fastapi import APIRouter

from . import (
    administrations,
    audit_events,
    auth,
    health,
    medication_links,
    prescriptions,
    protocols,
    time_simulation,
)

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(medication_links.router, tags=["medication-links"])
router.include_router(prescriptions.router, tags=["prescriptions"])
router.include_router(protocols.router, tags=["protocols"])
router.include_router(administrations.router, tags=["administrations"])
router.include_router(time_simulation.router, tags=["time-simulation"])
router.include_router(audit_events.router, tags=["audit"])

__all__ = ["router"]
