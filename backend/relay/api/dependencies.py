"""
FastAPI dependencies handing the settings and remote clients built by
create_app() to route handlers.
"""
from fastapi import Request

from relay.config import Settings
from relay.storage.cloudant_client import DocumentStoreClient
from relay.storage.cos_client import ObjectStorageClient


def get_settings(request: Request) -> Settings:
    """Settings constructed at startup."""
    return request.app.state.settings


def get_object_storage(request: Request) -> ObjectStorageClient:
    """Object storage client bound to the startup settings."""
    return request.app.state.object_storage


def get_document_store(request: Request) -> DocumentStoreClient:
    """Document store client bound to the startup settings."""
    return request.app.state.document_store
