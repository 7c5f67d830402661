"""
IBM Cloud Object Storage / S3-compatible storage client.

Uses boto3 with the S3-compatible API. Works with any S3-compatible
storage: the endpoint host comes from settings, the scheme from the
TLS flag.
"""
import logging
import mimetypes
import time
from typing import Optional
from urllib.parse import urlsplit

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from relay.config import Settings
from relay.exceptions import ConfigurationError, ObjectStorageError
from relay.utils.logging import log_upstream_failure, log_upstream_request
from relay.utils.metrics import upstream_requests_total, upstream_request_duration_seconds

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Error codes S3 returns from HeadBucket for a missing bucket
_MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}


def sanitize_object_name(name: str) -> str:
    """
    Reduce an object name to its last path component.
    
    Both '/' and '\\' count as separators so uploads from Windows clients
    cannot smuggle directories into the key.
    
    Examples:
        "a.txt" -> "a.txt"
        "../../etc/passwd" -> "passwd"
        "dir/sub/" -> "sub"
        "" -> "."
        "///" -> "/"
    """
    if name == "":
        return "."
    stripped = name.rstrip("/\\")
    if stripped == "":
        return "/"
    return stripped.replace("\\", "/").rsplit("/", 1)[-1]


def normalize_endpoint(endpoint: str) -> str:
    """
    Return the endpoint host without any URI scheme.
    
    "https://s3.example.com" -> "s3.example.com"; a bare host is returned
    unchanged.
    """
    parts = urlsplit(endpoint)
    if parts.scheme and parts.netloc:
        return parts.netloc
    return endpoint


def build_endpoint_url(endpoint: str, use_ssl: bool) -> str:
    """Build the boto3 endpoint URL; only the TLS flag picks the scheme."""
    scheme = "https" if use_ssl else "http"
    return f"{scheme}://{normalize_endpoint(endpoint)}"


def guess_content_type(object_name: str) -> str:
    """Infer the MIME type from the object name's extension."""
    content_type, _ = mimetypes.guess_type(object_name, strict=False)
    return content_type or DEFAULT_CONTENT_TYPE


class ObjectStorageClient:
    """
    S3-compatible client for IBM Cloud Object Storage.
    
    Stores a single byte payload as an object, creating the bucket first
    when it does not exist. Every failure is terminal for the call.
    """
    
    def __init__(
        self,
        endpoint: Optional[str],
        access_key: Optional[str],
        secret_key: Optional[str],
        bucket: Optional[str],
        use_ssl: bool = True,
        region: str = "us-east-1"
    ):
        """
        Initialize the client.
        
        The boto3 client is only built when every setting is present;
        otherwise is_configured is False and upload() refuses to run.
        """
        self._endpoint = endpoint
        self._access_key = access_key
        self._secret_key = secret_key
        self._bucket = bucket
        self._use_ssl = use_ssl
        self._region = region
        self._client = None
        
        if not self.is_configured:
            logger.warning(
                "Object storage not configured. "
                "Set IBM_COS_ENDPOINT, IBM_COS_ACCESS_KEY, IBM_COS_SECRET_KEY and IBM_COS_BUCKET."
            )
    
    @classmethod
    def from_settings(cls, settings: Settings) -> "ObjectStorageClient":
        """Build a client from application settings."""
        return cls(
            endpoint=settings.ibm_cos_endpoint,
            access_key=settings.ibm_cos_access_key,
            secret_key=settings.ibm_cos_secret_key,
            bucket=settings.ibm_cos_bucket,
            use_ssl=settings.ibm_cos_use_ssl,
            region=settings.ibm_cos_region
        )
    
    @property
    def is_configured(self) -> bool:
        """Check if endpoint, credentials and bucket are all set."""
        return all([self._endpoint, self._access_key, self._secret_key, self._bucket])
    
    @property
    def bucket(self) -> Optional[str]:
        """Get configured bucket name."""
        return self._bucket
    
    def _get_client(self):
        """Create the boto3 S3 client on first use."""
        if self._client is None:
            try:
                # Path-style addressing keeps the bucket out of the hostname
                self._client = boto3.client(
                    's3',
                    endpoint_url=build_endpoint_url(self._endpoint, self._use_ssl),
                    aws_access_key_id=self._access_key,
                    aws_secret_access_key=self._secret_key,
                    region_name=self._region,
                    config=Config(
                        signature_version='s3v4',
                        s3={'addressing_style': 'path'}
                    )
                )
            except (BotoCoreError, ValueError) as e:
                raise ObjectStorageError(f"create s3 client: {e}") from e
            logger.info(f"Object storage client initialized for bucket: {self._bucket}")
        return self._client
    
    def bucket_exists(self) -> bool:
        """
        Check whether the configured bucket exists.
        
        Returns:
            True if the bucket exists, False if the service reports it missing
            
        Raises:
            ObjectStorageError: If the check itself fails (transport, auth)
        """
        client = self._get_client()
        try:
            client.head_bucket(Bucket=self._bucket)
            return True
        except ClientError as e:
            code = str(e.response.get('Error', {}).get('Code', ''))
            if code in _MISSING_BUCKET_CODES:
                return False
            raise ObjectStorageError(f"check bucket exists: {e}") from e
        except BotoCoreError as e:
            raise ObjectStorageError(f"check bucket exists: {e}") from e
    
    def ensure_bucket(self) -> bool:
        """
        Create the bucket with default options if it does not exist.
        
        Returns:
            True if the bucket was created by this call
        """
        if self.bucket_exists():
            return False
        
        client = self._get_client()
        try:
            client.create_bucket(Bucket=self._bucket)
        except (ClientError, BotoCoreError) as e:
            raise ObjectStorageError(f"create bucket: {e}") from e
        
        logger.info(f"Created bucket {self._bucket}")
        return True
    
    def upload(self, object_name: str, data: bytes) -> str:
        """
        Store data as an object in the configured bucket.
        
        Args:
            object_name: Destination name; reduced to its base name
            data: Object contents
            
        Returns:
            The object key actually written
            
        Raises:
            ConfigurationError: If the client is not configured
            ObjectStorageError: If the bucket check, bucket creation or
                object write fails
        """
        if not self.is_configured:
            raise ConfigurationError("COS configuration not set")
        
        object_key = sanitize_object_name(object_name)
        content_type = guess_content_type(object_key)
        start_time = time.time()
        
        try:
            self.ensure_bucket()
            try:
                self._get_client().put_object(
                    Bucket=self._bucket,
                    Key=object_key,
                    Body=data,
                    ContentLength=len(data),
                    ContentType=content_type
                )
            except (ClientError, BotoCoreError) as e:
                raise ObjectStorageError(f"put object: {e}") from e
        except ObjectStorageError as e:
            duration = time.time() - start_time
            upstream_requests_total.labels(service="cos", outcome="failure").inc()
            upstream_request_duration_seconds.labels(service="cos").observe(duration)
            log_upstream_failure(
                logger,
                service="cos",
                operation="put_object",
                error=e.message,
                duration_ms=duration * 1000,
                bucket=self._bucket,
                object_key=object_key
            )
            raise
        
        duration = time.time() - start_time
        upstream_requests_total.labels(service="cos", outcome="success").inc()
        upstream_request_duration_seconds.labels(service="cos").observe(duration)
        log_upstream_request(
            logger,
            service="cos",
            operation="put_object",
            duration_ms=duration * 1000,
            bucket=self._bucket,
            object_key=object_key,
            size_bytes=len(data),
            content_type=content_type
        )
        return object_key
