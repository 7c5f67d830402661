"""
Health check endpoint.
Reports which remote services are configured; makes no remote calls.
"""
from fastapi import APIRouter, Depends

from relay.api.dependencies import get_document_store, get_object_storage
from relay.storage.cloudant_client import DocumentStoreClient
from relay.storage.cos_client import ObjectStorageClient

router = APIRouter()


@router.get("")
async def health_check(
    object_storage: ObjectStorageClient = Depends(get_object_storage),
    document_store: DocumentStoreClient = Depends(get_document_store)
):
    """
    Health check endpoint.
    Returns the configuration status of object storage and the document store.
    """
    return {
        "status": "healthy",
        "object_storage": "configured" if object_storage.is_configured else "not configured",
        "document_store": "configured" if document_store.is_configured else "not configured"
    }
