#!/usr/bin/env python3
"""
ABOUTME: Error types raised by the format audit pipeline
ABOUTME: Each error records the stage (parse/extract/compare/annotate/package) it came from
"""

from typing import Optional


class FormatAuditError(Exception):
    """
    Base error for the format audit pipeline.

    Args:
        message: Human readable description
        stage: Pipeline stage that failed (parse, extract, compare, annotate, package)
        path: Offending file path, if any
    """

    def __init__(self, message: str, stage: str = "", path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.path = str(path) if path is not None else None

    def __str__(self) -> str:
        text = self.message
        if self.path and self.path not in text:
            text = f"{text}: {self.path}"
        if self.stage:
            text = f"[{self.stage}] {text}"
        cause = self.__cause__
        if cause is not None and str(cause) and str(cause) not in text:
            text = f"{text} ({type(cause).__name__}: {cause})"
        return text


class PackageIOError(FormatAuditError, OSError):
    """Source unreadable, destination uncreatable or permission denied."""


class PackageError(FormatAuditError):
    """Archive is not a valid document package or a required part is missing."""


class RuleValidationError(FormatAuditError, ValueError):
    """A rule set fails structural checks (missing id/name, non-positive sizes)."""


class AnnotationError(FormatAuditError):
    """Comment injection failed."""


class PartialAnnotationFailure(FormatAuditError):
    """
    Annotation failed after a successful comparison.

    The combined workflow records this on the report instead of raising it.
    """
