"""
COS / Cloudant relay service.

Forwards uploaded files to S3-compatible object storage and JSON bodies to a
Cloudant document database.
"""

__version__ = "0.1.0"
