"""
Models for the document assembly pipeline.

Segments, block handles and media bindings are internal, short-lived values
and are plain frozen dataclasses. Requests and records crossing the public
surface are Pydantic models.
"""
from dataclasses import dataclass
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class TextSegment:
    """One line of prose"""
    value: str
    kind: str = "text"


@dataclass(frozen=True)
class ImageSegment:
    """An inline image reference"""
    source_url: str
    kind: str = "image"


ContentSegment = Union[TextSegment, ImageSegment]


@dataclass(frozen=True)
class RemoteBlockHandle:
    """Server-assigned block id for a segment of the current batch

    Attributes:
        block_id: Block identifier returned by the document service
        segment_index: Position of the originating segment in the document
    """
    block_id: str
    segment_index: int


@dataclass(frozen=True)
class MediaBinding:
    """Uploaded media token waiting to be bound to its image block"""
    block_id: str
    media_token: str


class ImageUploaded(BaseModel):
    """Image downloaded, uploaded and bound to its block"""
    status: Literal["uploaded"] = "uploaded"
    block_id: str
    source_url: str
    media_token: str


class ImageFailed(BaseModel):
    """Image omitted from the document; the placeholder block stays empty"""
    status: Literal["failed"] = "failed"
    block_id: Optional[str] = None
    source_url: str
    reason: str


ImageOutcome = Union[ImageUploaded, ImageFailed]


class CreateDocumentRequest(BaseModel):
    """Captured content to publish as a new document"""
    model_config = ConfigDict(populate_by_name=True)

    title: str
    content: str
    repository_id: str = Field(alias="repositoryId")


class CompletionRecord(BaseModel):
    """Result of one publish operation

    ``images`` reports every image reference found in the content, in
    document order.
    """
    model_config = ConfigDict(populate_by_name=True)

    href: str
    repository_id: str = Field(alias="repositoryId")
    document_id: str = Field(alias="documentId")
    images: List[ImageOutcome] = Field(default_factory=list)

    @property
    def failed_images(self) -> List[ImageFailed]:
        return [image for image in self.images if isinstance(image, ImageFailed)]


class UserInfo(BaseModel):
    """Profile of the authenticated Feishu user"""
    avatar: Optional[str] = None
    name: Optional[str] = None
    home_page: str
    description: str = "Feishu User"


class Repository(BaseModel):
    """A destination folder documents can be created in"""
    id: str
    name: str
    group_id: str = "me"
    group_name: str = "Personal"
