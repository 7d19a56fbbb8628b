# byok/app/api/v1/router.py
from fastapi import APIRouter
from byok.app.api.v1.endpoints import credentials, generations, providers

api_router = APIRouter()
api_router.include_router(providers.router, prefix="/providers", tags=["providers"])
api_router.include_router(credentials.router, prefix="/credentials", tags=["credentials"])
api_router.include_router(generations.router, prefix="/generations", tags=["generations"])
