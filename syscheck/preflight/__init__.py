"""
Pre-flight Check Module

Runs the ordered sequence of environment checks and aggregates their
status lines into a single pass/fail verdict.
"""

from .models import CheckResult, StatusKind, StatusLine, StatusWriter
from .registry import CHECKS, CheckDescriptor, CheckId, default_checks, discover_external_checks
from .checker import PreflightChecker, PreflightResult
from .summary import render_summary

__all__ = [
    "PreflightChecker",
    "PreflightResult",
    "CheckResult",
    "StatusKind",
    "StatusLine",
    "StatusWriter",
    "CHECKS",
    "CheckDescriptor",
    "CheckId",
    "default_checks",
    "discover_external_checks",
    "render_summary",
]
