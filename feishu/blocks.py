"""Ordered, batched creation of document blocks"""

import logging
from typing import Any, Dict, Iterator, List, Sequence, Tuple

from settings import APPEND_INDEX, BLOCK_BATCH_SIZE, BLOCK_TYPE_IMAGE, BLOCK_TYPE_TEXT
from .client import FeishuClient, data_object
from .media import MediaUploadCoordinator
from .models import ContentSegment, ImageFailed, ImageOutcome, ImageSegment, RemoteBlockHandle

logger = logging.getLogger(__name__)


def children_path(document_id: str) -> str:
    # The document's root block shares the document id
    return f"/open-apis/docx/v1/documents/{document_id}/blocks/{document_id}/children"


def build_block(segment: ContentSegment) -> Dict[str, Any]:
    """Block payload for a segment; images start with an empty media token"""
    if isinstance(segment, ImageSegment):
        return {
            "block_type": BLOCK_TYPE_IMAGE,
            "image": {"token": ""},
        }
    return {
        "block_type": BLOCK_TYPE_TEXT,
        "text": {"elements": [{"text_run": {"content": segment.value}}]},
    }


def iter_batches(
    segments: Sequence[ContentSegment],
    size: int = BLOCK_BATCH_SIZE,
) -> Iterator[Tuple[int, Sequence[ContentSegment]]]:
    """Yield (offset, batch) pairs covering segments in order"""
    for offset in range(0, len(segments), size):
        yield offset, segments[offset:offset + size]


class ChunkedBlockPublisher:
    """Appends segments to a document in fixed-size batches

    Batches go out strictly one after another: every call appends at the
    end of the document, so batch n must exist before batch n+1 is sent.
    Image blocks of a batch are filled by the media coordinator before the
    next batch starts.
    """

    def __init__(
        self,
        client: FeishuClient,
        media: MediaUploadCoordinator,
        batch_size: int = BLOCK_BATCH_SIZE,
    ):
        self.client = client
        self.media = media
        self.batch_size = batch_size

    async def publish(self, document_id: str, segments: Sequence[ContentSegment]) -> List[ImageOutcome]:
        """Create one block per segment at the end of the document

        Args:
            document_id: Target document
            segments: Segments in document order

        Returns:
            Outcomes of every image segment, in document order

        Raises:
            RemoteApiError, TransportError, SessionExpiredError: A block
                creation call failed; earlier batches stay in the document
        """
        outcomes: List[ImageOutcome] = []
        total = len(segments)

        for offset, batch in iter_batches(segments, self.batch_size):
            handles = await self._create_batch(document_id, offset, batch)
            logger.info(f"Created blocks {offset + 1}-{offset + len(batch)} of {total}")

            by_index = {handle.segment_index: handle for handle in handles}
            batch_outcomes: Dict[int, ImageOutcome] = {}
            images: List[Tuple[str, str]] = []
            image_indexes: List[int] = []
            for index, segment in enumerate(batch, start=offset):
                if not isinstance(segment, ImageSegment):
                    continue
                handle = by_index.get(index)
                if handle is None:
                    logger.warning(f"No block id returned for image {segment.source_url}")
                    batch_outcomes[index] = ImageFailed(
                        source_url=segment.source_url,
                        reason="Document service returned no block for this image",
                    )
                    continue
                images.append((handle.block_id, segment.source_url))
                image_indexes.append(index)

            uploaded = await self.media.upload_and_bind(document_id, images)
            batch_outcomes.update(zip(image_indexes, uploaded))
            outcomes.extend(batch_outcomes[index] for index in sorted(batch_outcomes))

        return outcomes

    async def _create_batch(
        self,
        document_id: str,
        offset: int,
        batch: Sequence[ContentSegment],
    ) -> List[RemoteBlockHandle]:
        path = children_path(document_id)
        data = await self.client.call(
            path,
            "POST",
            {"children": [build_block(segment) for segment in batch], "index": APPEND_INDEX},
        )
        children = data_object(path, data).get("children") or []
        # Children come back in request order, so ids pair up by position
        return [
            RemoteBlockHandle(block_id=child["block_id"], segment_index=offset + position)
            for position, child in enumerate(children[:len(batch)])
            if isinstance(child, dict) and child.get("block_id")
        ]
