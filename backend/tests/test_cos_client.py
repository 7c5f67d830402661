"""
Tests for the object storage client.
boto3 is replaced with a MagicMock; no network access.
"""
import pytest
from unittest.mock import MagicMock, patch
from botocore.exceptions import ClientError, EndpointConnectionError

from relay.exceptions import ConfigurationError, ObjectStorageError
from relay.storage.cos_client import (
    DEFAULT_CONTENT_TYPE,
    ObjectStorageClient,
    build_endpoint_url,
    guess_content_type,
    normalize_endpoint,
    sanitize_object_name,
)


def _client(**overrides) -> ObjectStorageClient:
    values = {
        "endpoint": "https://s3.test.local",
        "access_key": "ak",
        "secret_key": "sk",
        "bucket": "uploads",
        "use_ssl": True,
    }
    values.update(overrides)
    return ObjectStorageClient(**values)


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestObjectNameHelpers:
    """Tests for name, endpoint and content type helpers."""
    
    @pytest.mark.parametrize("name,expected", [
        ("a.txt", "a.txt"),
        ("dir/a.txt", "a.txt"),
        ("../../etc/passwd", "passwd"),
        ("dir/sub/", "sub"),
        ("C:\\Users\\me\\a.txt", "a.txt"),
        ("", "."),
        ("///", "/"),
    ])
    def test_sanitize_object_name(self, name, expected):
        assert sanitize_object_name(name) == expected
    
    def test_normalize_endpoint_strips_scheme(self):
        assert normalize_endpoint("https://s3.example.com") == "s3.example.com"
        assert normalize_endpoint("http://minio:9000/") == "minio:9000"
    
    def test_normalize_endpoint_keeps_bare_host(self):
        assert normalize_endpoint("s3.example.com") == "s3.example.com"
        assert normalize_endpoint("localhost:9000") == "localhost:9000"
    
    def test_tls_flag_picks_scheme(self):
        """Test the scheme follows the TLS flag, not the endpoint string."""
        assert build_endpoint_url("http://s3.example.com", True) == "https://s3.example.com"
        assert build_endpoint_url("https://s3.example.com", False) == "http://s3.example.com"
    
    def test_guess_content_type(self):
        assert guess_content_type("a.txt") == "text/plain"
        assert guess_content_type("photo.png") == "image/png"
        assert guess_content_type("README") == DEFAULT_CONTENT_TYPE
        assert guess_content_type("blob.zzunknown") == DEFAULT_CONTENT_TYPE


class TestObjectStorageClient:
    """Tests for ObjectStorageClient.upload."""
    
    def test_is_configured(self):
        assert _client().is_configured
        assert not _client(bucket=None).is_configured
        assert not _client(secret_key="").is_configured
    
    def test_upload_unconfigured_raises(self):
        with pytest.raises(ConfigurationError):
            _client(endpoint=None).upload("a.txt", b"hello")
    
    def test_boto3_client_uses_normalized_endpoint(self, s3_mock: MagicMock):
        _client(endpoint="https://s3.test.local", use_ssl=False).upload("a.txt", b"hello")
        
        from relay.storage import cos_client
        kwargs = cos_client.boto3.client.call_args.kwargs
        assert kwargs["endpoint_url"] == "http://s3.test.local"
        assert kwargs["aws_access_key_id"] == "ak"
        assert kwargs["aws_secret_access_key"] == "sk"
    
    def test_upload_existing_bucket(self, s3_mock: MagicMock):
        key = _client().upload("nested/a.txt", b"hello")
        
        assert key == "a.txt"
        s3_mock.head_bucket.assert_called_once_with(Bucket="uploads")
        s3_mock.create_bucket.assert_not_called()
        s3_mock.put_object.assert_called_once_with(
            Bucket="uploads",
            Key="a.txt",
            Body=b"hello",
            ContentLength=5,
            ContentType="text/plain"
        )
    
    def test_upload_creates_missing_bucket(self, s3_mock: MagicMock):
        s3_mock.head_bucket.side_effect = _client_error("NoSuchBucket", "HeadBucket")
        
        _client().upload("a.bin", b"\x00\x01")
        
        s3_mock.create_bucket.assert_called_once_with(Bucket="uploads")
        assert s3_mock.put_object.call_args.kwargs["ContentType"] == DEFAULT_CONTENT_TYPE
    
    def test_bucket_check_failure_is_terminal(self, s3_mock: MagicMock):
        s3_mock.head_bucket.side_effect = _client_error("403", "HeadBucket")
        
        with pytest.raises(ObjectStorageError, match="check bucket exists"):
            _client().upload("a.txt", b"hello")
        
        s3_mock.create_bucket.assert_not_called()
        s3_mock.put_object.assert_not_called()
    
    def test_bucket_check_transport_failure(self, s3_mock: MagicMock):
        s3_mock.head_bucket.side_effect = EndpointConnectionError(endpoint_url="https://s3.test.local")
        
        with pytest.raises(ObjectStorageError, match="check bucket exists"):
            _client().upload("a.txt", b"hello")
    
    def test_create_bucket_failure(self, s3_mock: MagicMock):
        s3_mock.head_bucket.side_effect = _client_error("404", "HeadBucket")
        s3_mock.create_bucket.side_effect = _client_error("BucketAlreadyExists", "CreateBucket")
        
        with pytest.raises(ObjectStorageError, match="create bucket"):
            _client().upload("a.txt", b"hello")
        
        s3_mock.put_object.assert_not_called()
    
    def test_put_object_failure(self, s3_mock: MagicMock):
        s3_mock.put_object.side_effect = _client_error("AccessDenied", "PutObject")
        
        with pytest.raises(ObjectStorageError, match="put object"):
            _client().upload("a.txt", b"hello")
    
    def test_from_settings(self, settings):
        client = ObjectStorageClient.from_settings(settings)
        
        assert client.is_configured
        assert client.bucket == "uploads"
    
    def test_client_construction_failure(self):
        with patch("relay.storage.cos_client.boto3.client", side_effect=ValueError("Invalid endpoint")):
            with pytest.raises(ObjectStorageError, match="create s3 client"):
                _client().upload("a.txt", b"hello")
