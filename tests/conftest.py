"""Shared fixtures."""

import pytest

from backend.tailor.models import MediaInput


@pytest.fixture
def image_only() -> MediaInput:
    return MediaInput(image_bytes=b"\xff\xd8\xffjpeg-bytes", image_mime_type="image/jpeg")
