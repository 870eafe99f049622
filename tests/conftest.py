"""
Test Configuration
==================

Pytest fixtures and test configuration for kiseki_thumb.

JPEG payloads are generated on the fly with OpenCV so tests never depend
on binary fixtures checked into the repository.
"""

import io

import cv2
import numpy as np
import pytest

from kiseki_thumb.config import Settings


HEADER = (
    b'<roblox xmlns:xmime="http://www.w3.org/2005/05/xmlmime" version="4">'
    b"<Meta name=\"ExplicitAutoJoints\">true</Meta>"
    b"<Item class=\"Workspace\" referent=\"RBX0\"></Item>"
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep KISEKI_* variables from the developer's shell out of tests."""
    for name in (
        "KISEKI_CONFIG",
        "KISEKI_CHUNK_SIZE",
        "KISEKI_MAX_BUFFER_BYTES",
        "KISEKI_EXTENSIONS",
        "KISEKI_LOG_LEVEL",
        "KISEKI_LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_jpeg():
    """Factory encoding a solid BGR colour block as JPEG bytes."""

    def _make(width, height, color=(40, 120, 200), progressive=False):
        image = np.empty((height, width, 3), dtype=np.uint8)
        image[:, :] = color
        params = [cv2.IMWRITE_JPEG_QUALITY, 100]
        if progressive:
            params += [cv2.IMWRITE_JPEG_PROGRESSIVE, 1]
        ok, encoded = cv2.imencode(".jpg", image, params)
        assert ok
        return encoded.tobytes()

    return _make


@pytest.fixture
def make_container():
    """Factory wrapping a payload in a place file: header, closing tag, NUL."""

    def _make(payload, header=HEADER, terminator=b"\x00"):
        return header + b"</roblox>" + terminator + payload

    return _make


@pytest.fixture
def sample_jpeg(make_jpeg):
    """2x2 solid colour JPEG."""
    return make_jpeg(2, 2)


@pytest.fixture
def sample_container(make_container, sample_jpeg):
    """Place file bytes embedding a 2x2 JPEG."""
    return make_container(sample_jpeg)


@pytest.fixture
def sample_stream(sample_container):
    """Open byte source over the sample place file."""
    return io.BytesIO(sample_container)


@pytest.fixture
def default_settings():
    """Settings built from defaults only."""
    return Settings()
