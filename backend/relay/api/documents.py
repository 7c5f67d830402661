"""
JSON document endpoint.

POST /save-json forwards the raw request body to Cloudant as a new
document. The payload is opaque: it is not parsed or validated here.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from starlette.requests import ClientDisconnect

from relay.api.dependencies import get_document_store
from relay.api.disconnect import run_until_disconnect
from relay.exceptions import RelayError
from relay.storage.cloudant_client import DocumentStoreClient

router = APIRouter()


@router.post("/save-json")
async def save_json(
    request: Request,
    document_store: DocumentStoreClient = Depends(get_document_store)
):
    """
    Save the request body as a new Cloudant document.
    
    On success the document store's status code and body are returned
    verbatim. Any failure, including a document store status >= 300,
    becomes a 500 with a plain-text reason; the upstream body is logged by
    the client but not forwarded. A client disconnect cancels the outbound
    call.
    """
    if not document_store.is_configured:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Cloudant configuration not set"
        )
    
    try:
        body = await request.body()
    except ClientDisconnect:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="read body: client disconnected"
        )
    
    try:
        result = await run_until_disconnect(request, document_store.save_document(body))
    except ClientDisconnect:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="cloudant save failed: client disconnected"
        )
    except RelayError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"cloudant save failed: {e.message}"
        )
    
    return Response(
        content=result.body,
        status_code=result.status_code,
        media_type=result.content_type or "application/json"
    )
