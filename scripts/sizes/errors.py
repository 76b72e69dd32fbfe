#!/usr/bin/env python3
from __future__ import annotations


class SizeCompareError(RuntimeError):
    """Base exception for size comparison failures."""


class MissingArgumentError(SizeCompareError):
    """Raised when a required CLI input is absent or empty."""


class InputFileError(SizeCompareError):
    """Raised when the sample file cannot be read."""


class InvalidInputFormatError(SizeCompareError, ValueError):
    """Raised when the sample file is not valid JSON."""


class ExternalToolError(SizeCompareError):
    """Raised when a compressor or transcoder cannot produce output."""


class SchemaViolationError(SizeCompareError):
    """Raised when the sample does not conform to the schema type."""
