# app/api/v1/api.py

from fastapi import APIRouter
from app.api.v1.endpoints import (
    health,
    profiles,
    orders,
    negotiations,
    deals,
    ratings,
    tracking,
    loyalty,
    favorites,
    notifications,
    kyc,
    navigation,
    assistant,
    payments,
    telegram,
    referrals,
    partner,
)

# This is the main router for the v1 API.
# It will include all the specific endpoint routers.
api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(profiles.router)
api_router.include_router(orders.router)
api_router.include_router(negotiations.router)
api_router.include_router(deals.router)
api_router.include_router(ratings.router)
api_router.include_router(tracking.router)
api_router.include_router(loyalty.router)
api_router.include_router(favorites.router)
api_router.include_router(notifications.router)
api_router.include_router(kyc.router)
api_router.include_router(navigation.router)
api_router.include_router(assistant.router)
api_router.include_router(payments.router)
api_router.include_router(telegram.router)
api_router.include_router(referrals.router)
api_router.include_router(partner.router)
