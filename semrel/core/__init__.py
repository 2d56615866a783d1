"""Core types: results, errors and configuration."""

from .errors import (
    ConfigurationError,
    ErrorCode,
    GitAuthError,
    InvalidVersionError,
    PluginError,
    SemrelError,
)
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # errors
    "ConfigurationError",
    "ErrorCode",
    "GitAuthError",
    "InvalidVersionError",
    "PluginError",
    "SemrelError",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
