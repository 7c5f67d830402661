"""
Test configuration and fixtures.
Remote services are replaced by a mocked boto3 client and an httpx MockTransport.
"""
import os

# Set test environment before any imports
os.environ["ENVIRONMENT"] = "test"

import pytest
from typing import AsyncGenerator
from unittest.mock import patch, MagicMock

import httpx
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from relay.api.dependencies import get_document_store, get_object_storage
from relay.config import Settings
from relay.main import create_app
from relay.storage.cloudant_client import DocumentStoreClient
from relay.storage.cos_client import ObjectStorageClient


def make_settings(**overrides) -> Settings:
    """Fully configured settings, ignoring the process environment's .env file."""
    values = {
        "ibm_cos_endpoint": "https://s3.test.local",
        "ibm_cos_access_key": "test-access-key",
        "ibm_cos_secret_key": "test-secret-key",
        "ibm_cos_bucket": "uploads",
        "ibm_cos_use_ssl": True,
        "cloudant_url": "https://account.cloudant.test/",
        "cloudant_db": "documents",
        "cloudant_username": "admin",
        "cloudant_password": "secret",
        "environment": "test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class CloudantStub:
    """MockTransport handler that records requests and answers with a fixed response."""
    
    def __init__(self, status_code: int = 201, body: bytes = b'{"id":"doc1","ok":true}'):
        self.status_code = status_code
        self.body = body
        self.requests: list[httpx.Request] = []
    
    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(
            self.status_code,
            content=self.body,
            headers={"content-type": "application/json"}
        )


@pytest.fixture
def settings() -> Settings:
    """Settings with both remote services configured."""
    return make_settings()


@pytest.fixture
def cloudant_stub() -> CloudantStub:
    """Document store answering 201 with a created document."""
    return CloudantStub()


@pytest.fixture
def s3_mock():
    """Mock boto3 S3 client returned by boto3.client()."""
    with patch("relay.storage.cos_client.boto3.client") as client_factory:
        s3 = MagicMock()
        client_factory.return_value = s3
        yield s3


def get_test_app(settings: Settings, cloudant_stub: CloudantStub) -> FastAPI:
    """Create a test FastAPI app with clients bound to the stubs."""
    app = create_app(settings)
    
    object_storage = ObjectStorageClient.from_settings(settings)
    document_store = DocumentStoreClient.from_settings(
        settings,
        transport=httpx.MockTransport(cloudant_stub)
    )
    
    app.dependency_overrides[get_object_storage] = lambda: object_storage
    app.dependency_overrides[get_document_store] = lambda: document_store
    
    return app


@pytest.fixture
async def client(settings: Settings, cloudant_stub: CloudantStub, s3_mock: MagicMock) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = get_test_app(settings, cloudant_stub)
    
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    
    app.dependency_overrides.clear()


@pytest.fixture
async def unconfigured_client(cloudant_stub: CloudantStub, s3_mock: MagicMock) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for an app with no remote services configured."""
    settings = make_settings(
        ibm_cos_endpoint=None,
        ibm_cos_access_key=None,
        ibm_cos_secret_key=None,
        ibm_cos_bucket=None,
        cloudant_url=None,
        cloudant_db=None,
        cloudant_username=None,
        cloudant_password=None
    )
    app = get_test_app(settings, cloudant_stub)
    
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    
    app.dependency_overrides.clear()


@pytest.fixture
def app_factory(settings: Settings):
    """Build a configured app whose document store is answered by the given handler."""
    apps = []
    
    def factory(cloudant_handler) -> FastAPI:
        app = get_test_app(settings, cloudant_handler)
        apps.append(app)
        return app
    
    yield factory
    
    for app in apps:
        app.dependency_overrides.clear()
