"""
Configuration settings using Pydantic
Loads environment variables from .env file
"""

from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings"""

    # Server configuration
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8000, description="Server port")
    DEBUG: bool = Field(default=False, description="Debug mode")

    # Verification pipeline
    VERIFICATION_CACHE_TTL_SECONDS: int = Field(default=3600, description="Verdict cache time-to-live in seconds")
    VERIFICATION_TIMEOUT_MS: int = Field(default=12000, description="Deadline for a whole verification in milliseconds")
    VERIFY_RATE_LIMIT: str = Field(default="30/minute", description="Rate limit for the verify endpoint")

    # Individual checks
    DNS_TIMEOUT_SECONDS: float = Field(default=5.0, description="DNS resolver lifetime per query")
    SSL_TIMEOUT_SECONDS: float = Field(default=10.0, description="TLS handshake timeout")
    THREAT_PROVIDER_TIMEOUT_SECONDS: float = Field(default=10.0, description="Threat-intelligence API timeout")

    # Threat intelligence API keys (optional)
    GOOGLE_SAFE_BROWSING_API_KEY: Optional[str] = Field(default=None, description="Google Safe Browsing v4 API key")
    VIRUSTOTAL_API_KEY: Optional[str] = Field(default=None, description="VirusTotal v3 API key")

    # Heuristic lists and scoring weights
    HEURISTICS_FILE: Optional[str] = Field(default=None, description="Override path for heuristics.json")

    @property
    def SERVER_URL(self) -> str:
        """Get the server URL"""
        return f"http://{self.HOST if self.HOST != '0.0.0.0' else 'localhost'}:{self.PORT}"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env file


# Global settings instance
settings = Settings()
