#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
hackpatcher - Consolidated Exception Classes

This module contains all exception classes used in the project,
centralized in one place to avoid duplication and improve consistency.
"""

from datetime import datetime
from typing import Dict, Any, Optional


class BaseError(Exception):
    """Base class for all project-specific errors."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.error_code = error_code or "ERROR"
        self.details = details or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Converts the exception to a dictionary for structured logging."""
        return {
            'error_code': self.error_code,
            'message': str(self),
            'details': self.details,
            'timestamp': self.timestamp.isoformat()
        }


# =====================================================================================================
# Path and security errors
# =====================================================================================================

class SecurityError(BaseError):
    """Base class for security-related errors."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code or "SECURITY_ERROR", details)


class PathTraversalError(SecurityError):
    """Raised when an archive member or path would escape its target directory."""

    def __init__(self, message: str, path: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        path_details = details or {}
        if path:
            path_details['path'] = str(path)
        super().__init__(message, "PATH_TRAVERSAL", path_details)


class PathResolutionError(BaseError):
    """Raised when an output path cannot be derived for a patch file."""

    def __init__(self, message: str, path: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        path_details = details or {}
        if path:
            path_details['path'] = str(path)
        super().__init__(message, "PATH_RESOLUTION", path_details)


# =====================================================================================================
# Configuration errors
# =====================================================================================================

class ConfigurationError(BaseError):
    """Base class for configuration errors."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 file_path: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        config_details = details or {}
        if file_path:
            config_details['file_path'] = str(file_path)
        super().__init__(message, error_code or "CONFIG_ERROR", config_details)


class ValidationError(ConfigurationError):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 expected_type: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        validation_details = details or {}
        if field_name:
            validation_details['field_name'] = field_name
        if expected_type:
            validation_details['expected_type'] = expected_type
        super().__init__(message, "VALIDATION_ERROR", None, validation_details)


# =====================================================================================================
# IO errors
# =====================================================================================================

class ScannerError(BaseError):
    """Raised when a directory walk cannot start."""

    def __init__(self, message: str, file_path: Optional[str] = None,
                 scanner_name: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        scanner_details = details or {}
        if file_path:
            scanner_details['file_path'] = str(file_path)
        if scanner_name:
            scanner_details['scanner_name'] = scanner_name
        super().__init__(message, "SCANNER_ERROR", scanner_details)


class FileOperationError(BaseError):
    """Raised when a copy, permission, open, seek, write or truncate fails."""

    def __init__(self, message: str, file_path: Optional[str] = None,
                 operation: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        file_details = details or {}
        if file_path:
            file_details['file_path'] = str(file_path)
        if operation:
            file_details['operation'] = operation
        super().__init__(message, "FILE_OP_ERROR", file_details)


# =====================================================================================================
# Processing errors
# =====================================================================================================

class ProcessingError(BaseError):
    """Base class for errors while processing a single patch or archive."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 source_path: Optional[str] = None,
                 phase: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        proc_details = details or {}
        if source_path:
            proc_details['source_path'] = str(source_path)
        if phase:
            proc_details['phase'] = phase
        super().__init__(message, error_code or "PROCESSING_ERROR", proc_details)


class MalformedPatchError(ProcessingError):
    """Raised when a patch buffer cannot be parsed or encoded."""

    def __init__(self, message: str, source_path: Optional[str] = None,
                 position: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        patch_details = details or {}
        if position is not None:
            patch_details['position'] = position
        super().__init__(message, "MALFORMED_PATCH", source_path, "parse", patch_details)


class ArchiveExtractionError(ProcessingError):
    """Raised when an archive cannot be unpacked."""

    def __init__(self, message: str, source_path: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "ARCHIVE_ERROR", source_path, "extract", details)
