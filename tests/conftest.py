from io import BytesIO

import pillow_heif
import pytest
from PIL import Image

pillow_heif.register_heif_opener()


def make_image_bytes(image_format: str, size: tuple[int, int] = (64, 48), color=(200, 120, 90)) -> bytes:
    with Image.new('RGB', size, color) as image:
        result = BytesIO()
        image.save(result, image_format)
        return result.getvalue()


@pytest.fixture
def anyio_backend():
    return 'asyncio'


@pytest.fixture(scope='session')
def jpeg_bytes() -> bytes:
    return make_image_bytes('JPEG')


@pytest.fixture(scope='session')
def png_bytes() -> bytes:
    return make_image_bytes('PNG')


@pytest.fixture(scope='session')
def heic_bytes() -> bytes:
    return make_image_bytes('HEIF')
