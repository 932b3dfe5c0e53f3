from __future__ import annotations

import os


DEFAULT_PLACEHOLDER_IMAGE = "https://via.placeholder.com/400x200?text=Church+Event"


def db_path() -> str:
    return os.getenv("CHURCHEVENTS_DB", "churchevents.db")


def placeholder_image_url() -> str:
    """Image shown for events without one of their own."""
    return os.getenv("CHURCHEVENTS_PLACEHOLDER_IMAGE", DEFAULT_PLACEHOLDER_IMAGE)
