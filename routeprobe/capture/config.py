"""Settings supplied by the surrounding environment.

The base URL, the pre-computed impersonation key and the application log
location come from outside the capture engine; ProbeSettings carries them
into a DiagnosticSession.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..models.capture import MIN_TIMEOUT_MS


class ProbeSettings(BaseModel):
    """Environment-level configuration for diagnostic sessions."""

    base_url: str = Field(default="http://localhost", description="Application base URL")
    auth_key: Optional[str] = Field(default=None, description="Pre-computed impersonation key")
    app_log_path: Optional[Path] = Field(default=None, description="Application log to tail on empty 500s")
    headless: bool = Field(default=True, description="Run Chromium headless")
    timeout_ms: int = Field(default=30000, ge=MIN_TIMEOUT_MS, description="Default navigation timeout")

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v):
        v = v.strip().rstrip('/')
        if not v.startswith(('http://', 'https://')):
            raise ValueError("base_url must start with http:// or https://")
        return v

    def url_for(self, route: str) -> str:
        return self.base_url + route
