"""
Line segmentation for raw OCR text.
"""

import logging
from typing import List

from .models import Line

logger = logging.getLogger(__name__)


def segment_lines(text: str) -> List[Line]:
    """Split OCR text into trimmed, non-empty lines.

    Blank lines are dropped and do not take an index, so indexes stay
    contiguous over the retained lines.

    Args:
        text: Newline-delimited OCR output

    Returns:
        Lines in their original order
    """
    if not text:
        return []

    stripped = (raw.strip() for raw in text.split("\n"))
    lines = [Line(text=value, index=i) for i, value in enumerate(v for v in stripped if v)]

    logger.debug(f"Segmented OCR text into {len(lines)} lines")
    return lines
