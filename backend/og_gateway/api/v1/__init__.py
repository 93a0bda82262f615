"""
API v1 package
"""

from fastapi import APIRouter
from .inference import router as inference_router

# Create v1 router
api_router = APIRouter()

# Include inference routes
api_router.include_router(inference_router, tags=["inference"])
