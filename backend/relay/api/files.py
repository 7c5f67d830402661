"""
File upload endpoint.

POST /upload-file accepts multipart/form-data with a "file" part and an
optional "objectName" field and stores the file in object storage.

The whole file is read into memory before it is forwarded; the request is
capped at MAX_UPLOAD_BYTES.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import ClientDisconnect

from relay.api.dependencies import get_object_storage
from relay.api.disconnect import run_until_disconnect
from relay.exceptions import RelayError
from relay.storage.cos_client import ObjectStorageClient, sanitize_object_name

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_UPLOAD_BYTES = 32 << 20  # 32 MiB


def _declared_length(request: Request) -> int:
    try:
        return int(request.headers.get("content-length", 0))
    except ValueError:
        return 0


def resolve_object_name(object_name_field, filename) -> str:
    """
    Pick the destination object name.
    
    The objectName form field wins when present and non-empty; otherwise the
    base name of the uploaded file's name is used.
    """
    if isinstance(object_name_field, str) and object_name_field:
        return object_name_field
    return sanitize_object_name(filename or "")


@router.post("/upload-file", status_code=status.HTTP_201_CREATED)
async def upload_file(
    request: Request,
    object_storage: ObjectStorageClient = Depends(get_object_storage)
):
    """
    Upload a file to object storage.
    
    Flow:
    1. Refuse when object storage is not configured (before parsing)
    2. Parse the multipart form and pick the "file" part
    3. Resolve the object name (objectName field or filename)
    4. Read the file and upload it, creating the bucket if needed
    
    Returns 201 with {"object": "<stored key>"}.
    """
    if not object_storage.is_configured:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="COS configuration not set"
        )
    
    if _declared_length(request) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="parse multipart: request body too large"
        )
    
    try:
        form = await request.form()
    except StarletteHTTPException as e:
        # Starlette reports malformed multipart bodies as a 400
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"parse multipart: {e.detail}"
        )
    except (MultiPartException, ClientDisconnect) as e:
        reason = getattr(e, "message", None) or "client disconnected"
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"parse multipart: {reason}"
        )
    
    try:
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="read file: no file part named \"file\""
            )
        
        object_name = resolve_object_name(form.get("objectName"), upload.filename)
        
        try:
            data = await upload.read()
        except OSError as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"read file data: {e}"
            )
        
        if len(data) > MAX_UPLOAD_BYTES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="parse multipart: file too large"
            )
    finally:
        await form.close()
    
    try:
        object_key = await run_until_disconnect(
            request,
            run_in_threadpool(object_storage.upload, object_name, data)
        )
    except ClientDisconnect:
        # The boto3 call keeps running in its thread; only the wait stops
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="upload failed: client disconnected"
        )
    except RelayError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"upload failed: {e.message}"
        )
    
    logger.info(f"Stored object {object_key} ({len(data)} bytes)")
    
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"object": object_key}
    )
