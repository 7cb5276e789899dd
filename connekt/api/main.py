from fastapi import APIRouter

from connekt.api.endpoints.agencies import router as agencies_router
from connekt.api.endpoints.analytics import router as analytics_router
from connekt.api.endpoints.health import router as health_router
from connekt.api.endpoints.profiles import router as profiles_router

api_router = APIRouter()


@api_router.get("/")
async def root():
    return {"message": "Connekt profile API is running"}


api_router.include_router(health_router)
api_router.include_router(profiles_router)
api_router.include_router(agencies_router)
api_router.include_router(analytics_router)
