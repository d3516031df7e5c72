"""Canonical error codes recorded in step results and manifests."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    UNKNOWN = "UNKNOWN"

    VALIDATION_FAILED = "VALIDATION_FAILED"
    EXECUTION_FAILED = "EXECUTION_FAILED"
    TIMEOUT = "TIMEOUT"
    ABORTED = "ABORTED"
    STEP_NOT_FOUND = "STEP_NOT_FOUND"

    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"
    MEDIA_FAILED = "MEDIA_FAILED"
    ASR_FAILED = "ASR_FAILED"
    LLM_FAILED = "LLM_FAILED"
    EMBEDDING_FAILED = "EMBEDDING_FAILED"
    STORAGE_FAILED = "STORAGE_FAILED"
    EXPORT_FAILED = "EXPORT_FAILED"

    PROVIDER_FAILED = "PROVIDER_FAILED"
