"""Platform adapters: subprocess execution and CI environment detection."""

from .ci import CiEnvironment, detect_ci
from .process import ProcessError, run

__all__ = [
    "CiEnvironment",
    "ProcessError",
    "detect_ci",
    "run",
]
