"""Concurrent image transfer into the document's media store"""

import asyncio
import logging
import posixpath
from typing import List, Sequence, Tuple
from urllib.parse import urlparse

import httpx

from errors import FeishuError, SessionExpiredError
from settings import DEFAULT_IMAGE_NAME, MEDIA_UPLOAD_CONCURRENCY
from .client import FeishuClient
from .models import ImageFailed, ImageOutcome, ImageUploaded, MediaBinding

logger = logging.getLogger(__name__)


def batch_update_path(document_id: str) -> str:
    return f"/open-apis/docx/v1/documents/{document_id}/blocks/batch_update"


def image_file_name(source_url: str) -> str:
    """File name to upload an image under, taken from the URL path if it has one"""
    name = posixpath.basename(urlparse(source_url).path)
    if name and "." in name.strip("."):
        return name
    return DEFAULT_IMAGE_NAME


class MediaUploadCoordinator:
    """Downloads images, uploads them and binds them to placeholder blocks

    Per-image failures never propagate: they are logged and reported as
    ImageFailed so the rest of the document still gets published. An
    expired session is the exception; it ends the whole publish.
    """

    def __init__(self, client: FeishuClient, concurrency: int = MEDIA_UPLOAD_CONCURRENCY):
        self.client = client
        self.concurrency = max(1, concurrency)

    async def upload_and_bind(
        self,
        document_id: str,
        images: Sequence[Tuple[str, str]],
    ) -> List[ImageOutcome]:
        """Upload every image of one batch and patch them into the document

        Args:
            document_id: Document the image blocks belong to
            images: (block_id, source_url) pairs of image placeholder blocks

        Returns:
            One outcome per image, in the order given

        Raises:
            SessionExpiredError: No valid access token for an upload or the patch
        """
        if not images:
            return []

        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(block_id: str, source_url: str) -> ImageOutcome:
            async with semaphore:
                return await self._transfer(block_id, source_url)

        results = await asyncio.gather(
            *(bounded(block_id, source_url) for block_id, source_url in images),
            return_exceptions=True,
        )
        # Only fatal errors reach here; every transfer has settled before one is raised
        for result in results:
            if isinstance(result, BaseException):
                raise result
        outcomes: List[ImageOutcome] = list(results)

        bindings = [
            MediaBinding(block_id=outcome.block_id, media_token=outcome.media_token)
            for outcome in outcomes
            if isinstance(outcome, ImageUploaded)
        ]
        if not bindings:
            return outcomes

        try:
            await self._bind(document_id, bindings)
        except SessionExpiredError:
            raise
        except FeishuError as e:
            # The document already exists; it just keeps empty image blocks
            logger.error(f"Failed to batch update {len(bindings)} image block(s): {e}")
            return [
                ImageFailed(
                    block_id=outcome.block_id,
                    source_url=outcome.source_url,
                    reason=f"Binding media to block failed: {e}",
                )
                if isinstance(outcome, ImageUploaded) else outcome
                for outcome in outcomes
            ]

        logger.info(f"Batch updated {len(bindings)} image(s)")
        return outcomes

    async def _transfer(self, block_id: str, source_url: str) -> ImageOutcome:
        try:
            logger.debug(f"Downloading image: {source_url}")
            content = await self.client.download(source_url)
            media_token = await self.client.upload_media(
                parent_node=block_id,
                content=content,
                file_name=image_file_name(source_url),
            )
        except SessionExpiredError:
            raise
        except (FeishuError, httpx.HTTPError) as e:
            logger.warning(f"Image {source_url} omitted: {e}")
            return ImageFailed(block_id=block_id, source_url=source_url, reason=str(e))

        logger.debug(f"Image uploaded for block {block_id}")
        return ImageUploaded(block_id=block_id, source_url=source_url, media_token=media_token)

    async def _bind(self, document_id: str, bindings: List[MediaBinding]) -> None:
        requests = [
            {"block_id": binding.block_id, "replace_image": {"token": binding.media_token}}
            for binding in bindings
        ]
        await self.client.call(batch_update_path(document_id), "PATCH", {"requests": requests})
