"""Data models package."""

from .capture import (
    DEVICE_PRESETS,
    DEFAULT_SCREENSHOT_WIDTH,
    MIN_TIMEOUT_MS,
    ProbeOptions,
    ResponseDescriptor,
    XhrResponse,
    XhrEntry,
    RedirectHop,
    ConsoleEntry,
    NetworkFailure,
    DiagnosticStep,
    DiagnosticOutcome,
    FormInput,
    CookieEntry,
    StorageSnapshot,
    ProbeResult,
)

__all__ = [
    'DEVICE_PRESETS',
    'DEFAULT_SCREENSHOT_WIDTH',
    'MIN_TIMEOUT_MS',
    'ProbeOptions',
    'ResponseDescriptor',
    'XhrResponse',
    'XhrEntry',
    'RedirectHop',
    'ConsoleEntry',
    'NetworkFailure',
    'DiagnosticStep',
    'DiagnosticOutcome',
    'FormInput',
    'CookieEntry',
    'StorageSnapshot',
    'ProbeResult',
]
