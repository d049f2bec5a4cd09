"""Best-effort cleanup of artifacts the capture surfaces leave behind."""

from __future__ import annotations

import logging

from capturepack.capture.surface import MediaStore

logger = logging.getLogger(__name__)

DUPLICATE_IMAGE_DELTA = 2


def remove_duplicate_image(store: MediaStore, baseline: int | None) -> int | None:
    """Delete the older of two store entries written for a single photo.

    Some camera surfaces insert two images for one capture. When the store grew
    by exactly ``DUPLICATE_IMAGE_DELTA`` since ``baseline`` the older of the two
    newest entries is removed. This is a count heuristic and is racy against any
    other writer to the store; any other delta leaves the store untouched.
    Returns the deleted id, if any.
    """
    if baseline is None:
        return None
    current = store.count_images()
    if current - baseline != DUPLICATE_IMAGE_DELTA:
        return None
    ids = sorted(store.image_ids())
    if len(ids) < DUPLICATE_IMAGE_DELTA:
        return None
    duplicate = ids[-DUPLICATE_IMAGE_DELTA]
    logger.info("removing duplicate image id=%s (store grew %d -> %d)", duplicate, baseline, current)
    store.delete_image(duplicate)
    return duplicate


def discard_placeholder(store: MediaStore, uri: str | None, *, only_if_empty: bool = False) -> bool:
    """Delete a pre-created output placeholder; never raises on a missing file."""
    if uri is None:
        return False
    try:
        if only_if_empty and store.has_content(uri):
            return False
        store.delete_placeholder(uri)
    except OSError:
        logger.warning("could not delete placeholder %s", uri, exc_info=True)
        return False
    logger.debug("deleted placeholder %s", uri)
    return True
