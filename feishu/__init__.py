"""Feishu docx publishing package

Turns captured content into a Feishu document: ordered text and image
blocks created in batches, with images uploaded and bound per batch.
"""

from .models import (
    TextSegment,
    ImageSegment,
    ContentSegment,
    RemoteBlockHandle,
    MediaBinding,
    ImageUploaded,
    ImageFailed,
    ImageOutcome,
    CreateDocumentRequest,
    CompletionRecord,
    UserInfo,
    Repository,
)
from .client import FeishuClient
from .segmenter import segment_content, render_segments
from .blocks import ChunkedBlockPublisher, build_block, iter_batches
from .media import MediaUploadCoordinator
from .service import FeishuDocumentService

__all__ = [
    "TextSegment",
    "ImageSegment",
    "ContentSegment",
    "RemoteBlockHandle",
    "MediaBinding",
    "ImageUploaded",
    "ImageFailed",
    "ImageOutcome",
    "CreateDocumentRequest",
    "CompletionRecord",
    "UserInfo",
    "Repository",
    "FeishuClient",
    "segment_content",
    "render_segments",
    "ChunkedBlockPublisher",
    "build_block",
    "iter_batches",
    "MediaUploadCoordinator",
    "FeishuDocumentService",
]
