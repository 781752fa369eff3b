import struct

import pytest

from skinscan.images.format_detector import detect_format
from skinscan.models import DetectedFormat


def _ftyp(major: bytes, *compatible: bytes) -> bytes:
    payload = b"ftyp" + major + b"\x00\x00\x00\x00" + b"".join(compatible)
    return struct.pack(">I", len(payload) + 4) + payload + b"\x00" * 32


def test_detect_jpeg(jpeg_bytes: bytes):
    assert detect_format(jpeg_bytes) == DetectedFormat.JPEG


def test_detect_png(png_bytes: bytes):
    assert detect_format(png_bytes) == DetectedFormat.PNG


def test_detect_encoded_heic(heic_bytes: bytes):
    assert detect_format(heic_bytes) == DetectedFormat.HEIC


@pytest.mark.parametrize('major, compatible, expected', [
    (b'heic', (b'mif1', b'heic'), DetectedFormat.HEIC),
    (b'heix', (), DetectedFormat.HEIC),
    (b'mif1', (b'mif1', b'heic'), DetectedFormat.HEIC),
    (b'mif1', (b'mif1',), DetectedFormat.HEIF),
    (b'msf1', (), DetectedFormat.HEIF),
    (b'avif', (b'mif1', b'miaf'), DetectedFormat.UNKNOWN),
    (b'isom', (b'iso2', b'mp41'), DetectedFormat.UNKNOWN),
])
def test_detect_iso_bmff_brands(major: bytes, compatible: tuple[bytes, ...], expected: DetectedFormat):
    assert detect_format(_ftyp(major, *compatible)) == expected


@pytest.mark.parametrize('data', [b'', b'GIF89a' + b'\x00' * 20, b'not an image at all', b'\x00\x00\x00\x08ftyp'])
def test_detect_unknown(data: bytes):
    assert detect_format(data) == DetectedFormat.UNKNOWN
