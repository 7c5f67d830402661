"""
Cloudant / CouchDB document store client.

Creates a new document by POSTing raw JSON bytes to <base_url>/<database>.
Uses httpx so the outbound call is awaited on the request's own task and
is cancelled with it when the caller disconnects.
"""
import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from relay.config import Settings
from relay.exceptions import ConfigurationError, DocumentStoreError
from relay.utils.logging import log_upstream_failure, log_upstream_request
from relay.utils.metrics import upstream_requests_total, upstream_request_duration_seconds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentStoreResponse:
    """Raw answer from the document store."""
    body: bytes
    status_code: int
    content_type: Optional[str] = None


class DocumentStoreClient:
    """
    HTTP client for a Cloudant database.
    
    A fresh httpx.AsyncClient is opened per call; nothing is shared
    between requests.
    """
    
    def __init__(
        self,
        base_url: Optional[str],
        database: Optional[str],
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the client.
        
        Args:
            base_url: Account URL (e.g. https://account.cloudant.com)
            database: Database name
            username: Optional basic auth user; auth is sent only when set
            password: Optional basic auth password (may be empty)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self._base_url = base_url
        self._database = database
        self._username = username
        self._password = password
        self._timeout = timeout
        self._transport = transport
        
        if not self.is_configured:
            logger.warning("Cloudant not configured. Set CLOUDANT_URL and CLOUDANT_DB.")
    
    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "DocumentStoreClient":
        """Build a client from application settings."""
        return cls(
            base_url=settings.cloudant_url,
            database=settings.cloudant_db,
            username=settings.cloudant_username,
            password=settings.cloudant_password,
            timeout=settings.cloudant_timeout,
            transport=transport
        )
    
    @property
    def is_configured(self) -> bool:
        """Check if base URL and database are set."""
        return bool(self._base_url and self._database)
    
    @property
    def document_url(self) -> str:
        """URL documents are POSTed to."""
        return self._base_url.rstrip("/") + "/" + self._database
    
    def _auth(self) -> Optional[httpx.BasicAuth]:
        if self._username:
            return httpx.BasicAuth(self._username, self._password or "")
        return None
    
    async def save_document(self, json_bytes: bytes) -> DocumentStoreResponse:
        """
        Save json_bytes as a new document.
        
        The whole response body is read whatever the status.
        
        Args:
            json_bytes: Document body, sent verbatim
            
        Returns:
            DocumentStoreResponse with the upstream body and status (< 300)
            
        Raises:
            ConfigurationError: If URL or database is missing
            DocumentStoreError: On a malformed URL, a transport failure, or
                any status >= 300 (status_code and body are attached)
        """
        if not self.is_configured:
            raise ConfigurationError("Cloudant configuration not set")
        
        start_time = time.time()
        try:
            response = await self._post(json_bytes)
        except DocumentStoreError as e:
            self._record_failure(e, time.time() - start_time)
            raise
        
        duration = time.time() - start_time
        
        if response.status_code >= 300:
            error = DocumentStoreError(
                f"cloudant returned status {response.status_code}",
                status_code=response.status_code,
                body=response.content
            )
            self._record_failure(error, duration)
            raise error
        
        upstream_requests_total.labels(service="cloudant", outcome="success").inc()
        upstream_request_duration_seconds.labels(service="cloudant").observe(duration)
        log_upstream_request(
            logger,
            service="cloudant",
            operation="save_document",
            duration_ms=duration * 1000,
            database=self._database,
            upstream_status=response.status_code
        )
        
        return DocumentStoreResponse(
            body=response.content,
            status_code=response.status_code,
            content_type=response.headers.get("content-type")
        )
    
    async def _post(self, json_bytes: bytes) -> httpx.Response:
        """
        Send the POST and read the full body, mapping httpx errors.
        
        Redirects are returned, not followed, so a 3xx counts as a failure.
        """
        try:
            url = httpx.URL(self.document_url)
        except httpx.InvalidURL as e:
            raise DocumentStoreError(f"invalid cloudant url: {e}") from e
        
        async with httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=False
        ) as client:
            request = client.build_request(
                "POST",
                url,
                content=json_bytes,
                headers={"Content-Type": "application/json"}
            )
            try:
                response = await client.send(request, auth=self._auth(), stream=True)
            except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
                raise DocumentStoreError(f"invalid cloudant url: {e}") from e
            except httpx.RequestError as e:
                raise DocumentStoreError(f"request failed: {e}") from e
            
            # Status is known from here on; body failures keep it
            try:
                await response.aread()
            except httpx.HTTPError as e:
                raise DocumentStoreError(
                    f"read response: {e}",
                    status_code=response.status_code
                ) from e
            finally:
                await response.aclose()
        
        return response
    
    def _record_failure(self, error: DocumentStoreError, duration: float):
        upstream_requests_total.labels(service="cloudant", outcome="failure").inc()
        upstream_request_duration_seconds.labels(service="cloudant").observe(duration)
        extra = {}
        if error.status_code is not None:
            extra["upstream_status"] = error.status_code
        if error.body:
            extra["upstream_body"] = error.body.decode("utf-8", errors="replace")
        log_upstream_failure(
            logger,
            service="cloudant",
            operation="save_document",
            error=error.message,
            duration_ms=duration * 1000,
            database=self._database,
            **extra
        )
