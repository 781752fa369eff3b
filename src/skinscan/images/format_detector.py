import struct

from skinscan.models import DetectedFormat

_JPEG_MAGIC = b"\xff\xd8\xff"
_PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
_FTYP = b"ftyp"

# HEVC coded image brands
_HEIC_BRANDS = frozenset({b"heic", b"heix", b"heim", b"heis", b"hevc", b"hevx", b"hevm", b"hevs"})
# generic HEIF brands, codec is not HEVC or not declared
_HEIF_BRANDS = frozenset({b"mif1", b"msf1", b"heif", b"mif2"})
_AVIF_BRANDS = frozenset({b"avif", b"avis"})


def _read_ftyp_brands(data: bytes) -> list[bytes]:
    """ Returns major and compatible brands of an ISO BMFF 'ftyp' box, empty list if there is no such box """
    if len(data) < 16 or data[4:8] != _FTYP:
        return []

    box_size = struct.unpack(">I", data[0:4])[0]
    if box_size < 16:
        return []

    box_end = min(box_size, len(data))
    brands = [data[8:12]]
    # bytes 12..16 are the minor version
    for offset in range(16, box_end - 3, 4):
        brands.append(data[offset:offset + 4])
    return brands


def detect_format(data: bytes) -> DetectedFormat:
    """
    Classifies the encoded format of the given bytes by their content, declared content types are never used
    :param data: Image bytes
    :return: :class:`DetectedFormat`, `UNKNOWN` when the content was not recognized
    """
    if not data:
        return DetectedFormat.UNKNOWN

    if data.startswith(_JPEG_MAGIC):
        return DetectedFormat.JPEG

    if data.startswith(_PNG_MAGIC):
        return DetectedFormat.PNG

    brands = _read_ftyp_brands(data)
    if not brands:
        return DetectedFormat.UNKNOWN

    major_brand = brands[0]
    if major_brand in _HEIC_BRANDS:
        return DetectedFormat.HEIC
    if major_brand in _HEIF_BRANDS:
        if any(b in _HEIC_BRANDS for b in brands[1:]):
            return DetectedFormat.HEIC
        return DetectedFormat.HEIF

    if major_brand in _AVIF_BRANDS:
        return DetectedFormat.UNKNOWN

    # other ISO BMFF files may still list HEIF brands as compatible
    if any(b in _HEIC_BRANDS for b in brands[1:]):
        return DetectedFormat.HEIC
    if any(b in _HEIF_BRANDS for b in brands[1:]):
        return DetectedFormat.HEIF

    return DetectedFormat.UNKNOWN
