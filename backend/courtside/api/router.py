"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from courtside.api.routes import admin_bookings, admin_reviews, auth, bookings, reviews

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(bookings.router)
api_router.include_router(reviews.router)
api_router.include_router(admin_bookings.router)
api_router.include_router(admin_reviews.router)
