from fastapi import APIRouter

from portfolio.api.auth import router as auth_router, redirect_router
from portfolio.api.projects import router as projects_router
from portfolio.api.achievements import router as achievements_router
from portfolio.api.experiences import router as experiences_router
from portfolio.api.contact import router as contact_router
from portfolio.api.notifications import router as notifications_router
from portfolio.api.admin import router as admin_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(redirect_router, tags=["auth"])
api_router.include_router(projects_router, prefix="/projects", tags=["projects"])
api_router.include_router(achievements_router, prefix="/achievements", tags=["achievements"])
api_router.include_router(experiences_router, prefix="/experiences", tags=["experiences"])
api_router.include_router(contact_router, prefix="/contact", tags=["contact"])
api_router.include_router(notifications_router, prefix="/notifications", tags=["notifications"])
api_router.include_router(admin_router, prefix="/admin", tags=["admin"])
