"""
Health check route.
"""
from fastapi import APIRouter, Depends
from pastestore.models import HealthCheck
from pastestore.routes.deps import get_service
from pastestore.service import PasteService

router = APIRouter()


@router.get("/api/healthz", response_model=HealthCheck)
def health_check(service: PasteService = Depends(get_service)) -> HealthCheck:
    """
    Health check endpoint.
    Returns 200 with ok=true if application and store are healthy.
    """
    return HealthCheck(ok=service.store.ping())
