import io
import os

import pytest
from PIL import Image

_ORIENTATION_TAG = 0x0112


def _encode(image, fmt="JPEG", **options):
    buf = io.BytesIO()
    image.save(buf, format=fmt, **options)
    return buf.getvalue()


@pytest.fixture
def sample_image_bytes():
    """Minimal valid PNG for testing (1x1 white pixel)."""
    import base64
    return base64.b64decode(
        "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR4"
        "nGP4z8BQDwAEgAF/pooBPQAAAABJRU5ErkJggg=="
    )


@pytest.fixture
def make_jpeg():
    """Factory producing JPEG bytes of a given size, optionally EXIF-rotated."""

    def _make(width=400, height=300, color=(200, 40, 40), orientation=None):
        image = Image.new("RGB", (width, height), color)
        options = {"quality": 90}
        if orientation is not None:
            exif = Image.Exif()
            exif[_ORIENTATION_TAG] = orientation
            options["exif"] = exif.tobytes()
        return _encode(image, **options)

    return _make


@pytest.fixture
def jpeg_bytes(make_jpeg):
    """A 1200x800 landscape photo."""
    return make_jpeg(1200, 800)


@pytest.fixture
def png_rgba_bytes():
    image = Image.new("RGBA", (300, 200), (0, 128, 255, 128))
    return _encode(image, fmt="PNG")


@pytest.fixture
def small_image():
    """A decoded 10x10 image (cost 400)."""
    return Image.new("RGB", (10, 10), (0, 0, 0))


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "images"


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    """Keep the user's global config and PHOTOCACHE_* variables out of tests."""
    monkeypatch.setattr(
        "photocache.config.hierarchy._GLOBAL_CONFIG_PATH", tmp_path / "global" / "config.yaml"
    )
    for name in list(os.environ):
        if name.startswith("PHOTOCACHE_"):
            monkeypatch.delenv(name)
