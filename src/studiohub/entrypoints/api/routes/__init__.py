"""API route modules."""

from fastapi import APIRouter

from studiohub.entrypoints.api.routes.auth import router as auth_router
from studiohub.entrypoints.api.routes.company import router as company_router
from studiohub.entrypoints.api.routes.users import router as users_router

# Create main API router
api_router = APIRouter()

# Include all route modules
api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(company_router)

__all__ = ["api_router"]
