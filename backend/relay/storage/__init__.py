"""
Clients for the two remote services the relay forwards to.

- cos_client: S3-compatible object storage (IBM Cloud Object Storage)
- cloudant_client: Cloudant / CouchDB document database over HTTP
"""
from relay.storage.cos_client import ObjectStorageClient
from relay.storage.cloudant_client import DocumentStoreClient, DocumentStoreResponse

__all__ = ["ObjectStorageClient", "DocumentStoreClient", "DocumentStoreResponse"]
