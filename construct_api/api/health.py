"""
Health check and system status endpoints
"""
from fastapi import APIRouter, Depends

from construct_api.api.deps import get_services
from construct_api.state import Services


router = APIRouter(tags=["health"])


@router.get("/")
async def health_check(services: Services = Depends(get_services)):
    """Health check endpoint"""
    settings = services.settings
    return {
        "status": "ok",
        "message": "Construct Hackathon API",
        "version": "1.0.0",
        "storage": services.store.name,
        "registration_open": settings.registration.open,
        "submissions_open": settings.submissions.open,
    }
