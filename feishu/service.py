"""Feishu document service: publishes captured content as a docx document"""

import hashlib
import logging
from typing import Any, Dict, List, Optional, Union

from errors import FeishuError, SessionExpiredError, TransportError
from oauth import TokenLifecycleManager
from settings import BLOCK_BATCH_SIZE, FEISHU_DOC_BASE, FEISHU_HOME_PAGE, MEDIA_UPLOAD_CONCURRENCY
from .blocks import ChunkedBlockPublisher
from .client import FeishuClient, data_object
from .media import MediaUploadCoordinator
from .models import CompletionRecord, CreateDocumentRequest, Repository, UserInfo
from .segmenter import segment_content

logger = logging.getLogger(__name__)

DOCUMENTS_PATH = "/open-apis/docx/v1/documents"
USER_INFO_PATH = "/open-apis/authen/v1/user_info"
ROOT_FOLDER_META_PATH = "/open-apis/drive/explorer/v2/root_folder/meta"

MY_SPACE_NAME = "My Space"


class FeishuDocumentService:
    """Entry point of the publish pipeline

    create_document drives: empty document -> segments -> batched block
    creation -> per-batch image upload and binding. A failure after the
    document exists leaves the partially written document in place.
    """

    def __init__(
        self,
        token_manager: TokenLifecycleManager,
        client: Optional[FeishuClient] = None,
        doc_base: str = FEISHU_DOC_BASE,
        batch_size: int = BLOCK_BATCH_SIZE,
        media_concurrency: int = MEDIA_UPLOAD_CONCURRENCY,
    ):
        self.token_manager = token_manager
        self.client = client or FeishuClient(token_manager)
        self.doc_base = doc_base.rstrip("/")
        self.media = MediaUploadCoordinator(self.client, concurrency=media_concurrency)
        self.publisher = ChunkedBlockPublisher(self.client, self.media, batch_size=batch_size)
        self._user_info: Optional[Dict[str, Any]] = None

    async def __aenter__(self) -> "FeishuDocumentService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.client.aclose()

    def get_id(self) -> str:
        """Stable identifier of this service account, derived from the relay"""
        relay = self.token_manager.snapshot.relay_endpoint
        return hashlib.md5(relay.encode("utf-8")).hexdigest()

    def document_url(self, document_id: str) -> str:
        return f"{self.doc_base}/docx/{document_id}"

    async def create_document(
        self,
        request: Union[CreateDocumentRequest, Dict[str, Any]],
    ) -> CompletionRecord:
        """Create a document and fill it with the request's content

        Args:
            request: Title, content and destination folder

        Returns:
            CompletionRecord with the document link and a per-image report

        Raises:
            SessionExpiredError: No valid access token
            RemoteApiError: Document or block creation was rejected
            TransportError: Network or response format failure
        """
        if not isinstance(request, CreateDocumentRequest):
            request = CreateDocumentRequest.model_validate(request)

        data = data_object(DOCUMENTS_PATH, await self.client.call(DOCUMENTS_PATH, "POST", {
            "folder_token": request.repository_id,
            "title": request.title,
        }))
        document = data.get("document")
        document_id = document.get("document_id") if isinstance(document, dict) else None
        if not document_id:
            raise TransportError("Document creation response missing document_id")
        logger.info(f"Created Feishu document {document_id}")

        segments = segment_content(request.content)
        logger.info(f"Publishing {len(segments)} block(s) to document {document_id}")
        images = await self.publisher.publish(document_id, segments)

        record = CompletionRecord(
            href=self.document_url(document_id),
            repository_id=request.repository_id,
            document_id=document_id,
            images=images,
        )
        if record.failed_images:
            logger.warning(f"{len(record.failed_images)} of {len(images)} image(s) omitted from {document_id}")
        return record

    async def get_user_info(self) -> UserInfo:
        """Profile of the authenticated user, fetched once per service"""
        if self._user_info is None:
            self._user_info = data_object(USER_INFO_PATH, await self.client.call(USER_INFO_PATH, "GET"))
        info = self._user_info
        return UserInfo(
            avatar=info.get("avatar_url"),
            name=info.get("name") or info.get("en_name"),
            home_page=FEISHU_HOME_PAGE,
        )

    async def get_repositories(self) -> List[Repository]:
        """Destination folders: the user's root folder

        Falls back to the "root" alias when the folder lookup fails.
        """
        try:
            meta = data_object(ROOT_FOLDER_META_PATH, await self.client.call(ROOT_FOLDER_META_PATH, "GET"))
            folder_id = meta.get("token") or "root"
        except SessionExpiredError:
            raise
        except FeishuError as e:
            logger.warning(f"Root folder lookup failed, using default: {e}")
            folder_id = "root"
        return [Repository(id=folder_id, name=MY_SPACE_NAME)]
