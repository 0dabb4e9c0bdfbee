from fastapi import APIRouter

from src.sushflix.api.api_v1.endpoints import content, subscriptions, users

api_router = APIRouter()
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(subscriptions.router, prefix="/subscriptions", tags=["subscriptions"])
api_router.include_router(content.router, prefix="/content", tags=["content"])
