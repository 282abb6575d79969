from fastapi import APIRouter

from app.api.endpoints import domains

# Main API router
api_router = APIRouter()

# Include endpoint routers
api_router.include_router(domains.router, prefix="/domains", tags=["Domains"])
