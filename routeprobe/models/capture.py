"""Pydantic models for a single diagnostic session.

This module defines the invocation options, the unified response descriptor,
and the records accumulated by the event listeners while a route is loaded.
All models are scoped to one invocation.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..errors import ConfigurationError


DEVICE_PRESETS: Dict[str, int] = {
    'mobile': 375,
    'tablet': 768,
    'desktop': 1920,
}

DEFAULT_SCREENSHOT_WIDTH = 1920
MIN_TIMEOUT_MS = 5000

# Display flags switched on by --full
FULL_DISPLAY_FLAGS = (
    'headers',
    'console_log',
    'xhr_dump',
    'input_elements',
    'cookies',
    'storage',
)


class ProbeOptions(BaseModel):
    """Validated, immutable options for one diagnostic run."""

    model_config = ConfigDict(frozen=True)

    route: str = Field(description="Application-relative path under test")
    user_id: Optional[str] = Field(default=None, description="Identity to impersonate")

    # Display flags
    no_body: bool = Field(default=False, description="Suppress response body")
    follow_redirects: bool = Field(default=False, description="Show redirect chain")
    headers: bool = Field(default=False, description="Show response headers")
    console_log: bool = Field(default=False, description="Show all console output")
    xhr_dump: bool = Field(default=False, description="Show full XHR/fetch details")
    xhr_list: bool = Field(default=False, description="Show XHR/fetch URL list")
    input_elements: bool = Field(default=False, description="List form inputs")
    cookies: bool = Field(default=False, description="Show cookies")
    storage: bool = Field(default=False, description="Show localStorage/sessionStorage")
    full: bool = Field(default=False, description="Enable all display options")

    post_data: Optional[Union[Dict[str, Any], List[Any], str]] = Field(
        default=None,
        description="POST payload, structured (sent as JSON) or raw (sent form-encoded)"
    )

    # Post-load diagnostics
    wait_for: Optional[str] = Field(default=None, description="Selector to wait for")
    expect_element: Optional[str] = Field(default=None, description="Selector that must exist")
    dump_dimensions: Optional[str] = Field(default=None, description="Selector to annotate with layout")
    dump_element: Optional[str] = Field(default=None, description="Selector to extract markup from")
    eval_code: Optional[str] = Field(default=None, description="Script to evaluate in the page")

    timeout_ms: int = Field(default=30000, description="Navigation and selector wait timeout")
    screenshot_path: Optional[Path] = Field(default=None, description="Where to save a screenshot")
    screenshot_width: Optional[int] = Field(default=None, description="Screenshot width in pixels")

    @model_validator(mode='before')
    @classmethod
    def expand_full(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get('full'):
            data = dict(data)
            for flag in FULL_DISPLAY_FLAGS:
                data[flag] = True
        return data

    @field_validator('route', mode='before')
    @classmethod
    def normalize_route(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("Route argument required")
        v = str(v).strip()
        if not v.startswith('/'):
            v = '/' + v
        return v

    @field_validator('timeout_ms')
    @classmethod
    def validate_timeout(cls, v):
        if v < MIN_TIMEOUT_MS:
            raise ValueError(f"Timeout must be at least {MIN_TIMEOUT_MS}ms")
        return v

    @field_validator('screenshot_width', mode='before')
    @classmethod
    def resolve_width_preset(cls, v):
        if v is None or isinstance(v, int):
            return v
        text = str(v).strip().lower()
        if text in DEVICE_PRESETS:
            return DEVICE_PRESETS[text]
        try:
            return int(text)
        except ValueError:
            raise ValueError(
                f"Screenshot width must be pixels or one of: {', '.join(DEVICE_PRESETS)}"
            )

    @field_validator('screenshot_width')
    @classmethod
    def validate_width(cls, v):
        if v is not None and v <= 0:
            raise ValueError("Screenshot width must be positive")
        return v

    @field_validator('post_data', mode='before')
    @classmethod
    def parse_post_data(cls, v):
        if v is None or not isinstance(v, str):
            return v
        if not v:
            return None
        try:
            parsed = json.loads(v)
        except ValueError:
            return v
        # Only objects and arrays are structured; scalars stay raw text
        if isinstance(parsed, (dict, list)):
            return parsed
        return v

    @classmethod
    def build(cls, **values: Any) -> 'ProbeOptions':
        """Validate raw option values.

        Raises:
            ConfigurationError: If any option is invalid
        """
        try:
            return cls(**values)
        except ValidationError as e:
            messages = []
            for error in e.errors():
                msg = error.get('msg', '')
                # pydantic prefixes ValueError messages
                if msg.startswith('Value error, '):
                    msg = msg[len('Value error, '):]
                messages.append(msg)
            raise ConfigurationError('; '.join(messages)) from e

    @property
    def is_post(self) -> bool:
        return self.post_data is not None

    @property
    def captures_xhr(self) -> bool:
        return self.xhr_list or self.xhr_dump

    @property
    def effective_screenshot_width(self) -> int:
        return self.screenshot_width or DEFAULT_SCREENSHOT_WIDTH


class ResponseDescriptor(BaseModel):
    """Status, headers and final URL of the main response.

    Produced the same way for a real page load and for a simulated POST.
    """

    status: int = Field(description="HTTP status code")
    headers: Dict[str, str] = Field(default_factory=dict, description="Response headers")
    url: str = Field(description="Resolved final URL")

    @property
    def content_type(self) -> Optional[str]:
        """Primary content-type token without parameters."""
        value = self.headers.get('content-type')
        if not value:
            return None
        return value.split(';')[0]

    @property
    def location(self) -> Optional[str]:
        return self.headers.get('location')

    @property
    def is_html(self) -> bool:
        return 'text/html' in self.headers.get('content-type', '')


class XhrResponse(BaseModel):
    """Response half of an XHR/fetch exchange."""

    status: int
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None


class XhrEntry(BaseModel):
    """An XHR/fetch request and, once matched, its response."""

    url: str = Field(description="Request URL")
    method: str = Field(description="HTTP method")
    headers: Dict[str, str] = Field(default_factory=dict, description="Request headers")
    post_data: Optional[str] = Field(default=None, description="Request body")
    response: Optional[XhrResponse] = Field(default=None, description="Matched response")

    @property
    def is_pending(self) -> bool:
        return self.response is None

    def attach_response(self, response: XhrResponse) -> None:
        """Bind the response to this entry; an entry is matched only once."""
        if self.response is not None:
            raise ValueError(f"Response already attached for {self.method} {self.url}")
        self.response = response


class RedirectHop(BaseModel):
    """A 3xx response with a Location header."""

    url: str
    status: int
    location: str


class ConsoleEntry(BaseModel):
    """A console message of any severity."""

    type: str
    text: str


class NetworkFailure(BaseModel):
    """A request that failed at the transport layer."""

    url: str
    error_text: Optional[str] = None


class DiagnosticStep(str, Enum):
    """Post-load diagnostics, in execution order."""
    WAIT_FOR = "wait_for"
    EXPECT_ELEMENT = "expect_element"
    DUMP_DIMENSIONS = "dump_dimensions"
    DUMP_ELEMENT = "dump_element"
    EVALUATE = "evaluate"


class DiagnosticOutcome(BaseModel):
    """Result of one post-load diagnostic step."""

    step: DiagnosticStep
    selector: Optional[str] = None
    found: Optional[bool] = None
    payloads: List[str] = Field(
        default_factory=list,
        description="Serialized dimension payloads written to matched elements"
    )
    value: Optional[str] = Field(default=None, description="Extracted markup or evaluated value")
    error: Optional[str] = None


class FormInput(BaseModel):
    """A form control found on the page."""

    tag: str
    type: str = ""
    name: str = ""
    id: str = ""
    value: str = ""
    required: bool = False
    disabled: bool = False

    def describe(self) -> str:
        desc = f"<{self.tag}"
        if self.type:
            desc += f' type="{self.type}"'
        if self.name:
            desc += f' name="{self.name}"'
        if self.id:
            desc += f' id="{self.id}"'
        desc += '>'
        if self.value:
            desc += f' value="{self.value}"'
        if self.required:
            desc += ' [required]'
        if self.disabled:
            desc += ' [disabled]'
        return desc


class CookieEntry(BaseModel):
    """Cookie as shown in the report."""

    name: str
    value: str = ""
    domain: Optional[str] = None
    expires: Optional[datetime] = None

    @classmethod
    def from_playwright_cookie(cls, cookie: dict) -> 'CookieEntry':
        """Create CookieEntry from a Playwright cookie dict."""
        expires = cookie.get('expires', -1)
        return cls(
            name=cookie.get('name', ''),
            value=cookie.get('value', ''),
            domain=cookie.get('domain') or None,
            # -1 marks a session cookie
            expires=datetime.fromtimestamp(expires, tz=timezone.utc) if expires and expires > 0 else None,
        )

    @property
    def expires_iso(self) -> Optional[str]:
        if self.expires is None:
            return None
        return self.expires.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class StorageSnapshot(BaseModel):
    """localStorage and sessionStorage contents."""

    local: Dict[str, Optional[str]] = Field(default_factory=dict)
    session: Dict[str, Optional[str]] = Field(default_factory=dict)


class ProbeResult(BaseModel):
    """State accumulated over one diagnostic session, read at report time."""

    url: str = Field(description="Full URL under test")
    options: ProbeOptions
    response: ResponseDescriptor
    console_errors: List[str] = Field(default_factory=list)
    console_messages: List[ConsoleEntry] = Field(default_factory=list)
    network_failures: List[NetworkFailure] = Field(default_factory=list)
    xhr_requests: List[XhrEntry] = Field(default_factory=list)
    redirect_chain: List[RedirectHop] = Field(default_factory=list)
    diagnostics: List[DiagnosticOutcome] = Field(default_factory=list)

    @property
    def console_error_count(self) -> int:
        return len(self.console_errors)

    @property
    def network_failure_count(self) -> int:
        return len(self.network_failures)
