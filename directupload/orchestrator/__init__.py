"""Orchestrator package - drives direct upload attempts."""
from .core import UploadOrchestrator
from .submission import build_submission_fields, parse_success_status

__all__ = ["UploadOrchestrator", "build_submission_fields", "parse_success_status"]
