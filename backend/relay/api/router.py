"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from relay.api import documents, files, health

api_router = APIRouter()

# Include route modules
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(files.router, tags=["files"])
api_router.include_router(documents.router, tags=["documents"])
