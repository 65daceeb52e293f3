"""Split captured content into ordered text-line and image segments"""

import re
from typing import Iterable, List

from .models import ContentSegment, ImageSegment, TextSegment

# Capturing group keeps the image markers in re.split output
IMAGE_MARKER_SPLIT = re.compile(r"(!\[.*?\]\(.*?\))")
IMAGE_MARKER = re.compile(r"!\[.*?\]\((.*?)\)")
LINE_BREAK = re.compile(r"\r?\n")


def segment_content(content: str) -> List[ContentSegment]:
    """Turn content into segments in reading order

    Image markers ``![alt](url)`` become ImageSegments. Everything else is
    cut at line breaks into one TextSegment per non-empty line, which keeps
    each text block well below the service's per-block size limit.

    Args:
        content: Captured content, prose with inline image markers

    Returns:
        Ordered list of segments
    """
    segments: List[ContentSegment] = []
    for part in IMAGE_MARKER_SPLIT.split(content):
        if not part:
            continue
        image_match = IMAGE_MARKER.fullmatch(part)
        if image_match:
            segments.append(ImageSegment(source_url=image_match.group(1)))
            continue
        for line in LINE_BREAK.split(part):
            if line:
                segments.append(TextSegment(value=line))
    return segments


def render_segments(segments: Iterable[ContentSegment]) -> str:
    """Join segments back into text, one per line, images as ``![](url)``"""
    lines = []
    for segment in segments:
        if isinstance(segment, ImageSegment):
            lines.append(f"![]({segment.source_url})")
        else:
            lines.append(segment.value)
    return "\n".join(lines)
