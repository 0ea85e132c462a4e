"""API router for v1 endpoints."""

from fastapi import APIRouter

from gatekeeper.api import admin, guard, qa

router = APIRouter()

# Request-path quality gate
router.include_router(guard.router)

# Repair search for rejected pages
router.include_router(qa.router)

# Batch metrics, costs and routing priors
router.include_router(admin.router)
