"""Service layer for text tag operations."""

from .text_tag import TextTagService, OperationRequest, OperationMode

__all__ = ["TextTagService", "OperationRequest", "OperationMode"]
