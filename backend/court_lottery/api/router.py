"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from court_lottery.api.routes import requests, reservations, lottery

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(requests.router)
api_router.include_router(reservations.router)
api_router.include_router(reservations.availability_router)
api_router.include_router(lottery.router)
api_router.include_router(lottery.usage_router)
