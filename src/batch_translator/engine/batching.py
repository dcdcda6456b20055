# SPDX-License-Identifier: Apache-2.0
"""Batch planning for segment translation."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from batch_translator.engine.models import Batch, Segment

logger = logging.getLogger(__name__)


def plan_batches(
    segments: Sequence[Segment],
    max_count: int,
    max_chars: int,
) -> list[Batch]:
    """Split ordered segments into size- and length-bounded batches.

    Greedily fills the current batch. A new batch starts when the next segment
    would exceed ``max_count`` or push the accumulated length over
    ``max_chars``. A segment longer than ``max_chars`` is placed alone in its
    own batch; nothing is dropped or truncated.

    Args:
        segments: Segments in original order.
        max_count: Maximum segments per batch.
        max_chars: Maximum accumulated characters per batch.

    Returns:
        Batches in original segment order.

    Raises:
        ValueError: If a limit is smaller than 1.
    """
    if max_count < 1:
        raise ValueError(f"max_count must be at least 1, got {max_count}")
    if max_chars < 1:
        raise ValueError(f"max_chars must be at least 1, got {max_chars}")

    batches: list[Batch] = []
    current: list[int] = []
    current_chars = 0

    for segment in segments:
        length = len(segment.text)

        if current and (
            len(current) >= max_count or current_chars + length > max_chars
        ):
            batches.append(Batch(tuple(current), current_chars))
            current = []
            current_chars = 0

        if length > max_chars:
            # current is always empty here
            batches.append(Batch((segment.index,), length))
            continue

        current.append(segment.index)
        current_chars += length

    if current:
        batches.append(Batch(tuple(current), current_chars))

    logger.debug(
        "Planned %d batches from %d segments (max_count=%d, max_chars=%d)",
        len(batches),
        len(segments),
        max_count,
        max_chars,
    )
    return batches
