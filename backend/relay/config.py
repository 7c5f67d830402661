"""
Application configuration using Pydantic Settings.
All environment variables are loaded here with sensible defaults.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # IBM Cloud Object Storage / S3-compatible storage
    ibm_cos_endpoint: Optional[str] = None  # e.g., s3.us-south.cloud-object-storage.appdomain.cloud
    ibm_cos_access_key: Optional[str] = None  # HMAC access key ID
    ibm_cos_secret_key: Optional[str] = None  # HMAC secret access key
    ibm_cos_bucket: Optional[str] = None
    ibm_cos_use_ssl: bool = True
    ibm_cos_region: str = "us-east-1"
    
    # Cloudant / CouchDB
    cloudant_url: Optional[str] = None  # e.g., https://<account>.cloudant.com
    cloudant_db: Optional[str] = None
    cloudant_username: Optional[str] = None
    cloudant_password: Optional[str] = None
    cloudant_timeout: float = 30.0  # Seconds
    
    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    
    # Environment
    environment: str = "dev"
    log_level: str = "INFO"
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        frozen=True
    )
    
    @field_validator("ibm_cos_use_ssl", mode="before")
    @classmethod
    def _parse_use_ssl(cls, value):
        # Unrecognised spellings disable TLS rather than failing startup
        if isinstance(value, str):
            return value.strip() in _TRUE_VALUES
        return value
    
    @property
    def cos_configured(self) -> bool:
        """Check if every object storage setting is present."""
        return all([
            self.ibm_cos_endpoint,
            self.ibm_cos_access_key,
            self.ibm_cos_secret_key,
            self.ibm_cos_bucket
        ])
    
    @property
    def cloudant_configured(self) -> bool:
        """Check if the document store URL and database are present."""
        return bool(self.cloudant_url and self.cloudant_db)
