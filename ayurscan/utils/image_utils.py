"""
Утилиты для работы с изображениями
"""
import base64
import binascii
import logging
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


def detect_image_format(image_bytes: bytes) -> Optional[str]:
    """
    Определяет формат изображения по магическим байтам.
    Возвращает MIME type или None.
    """
    if not image_bytes or len(image_bytes) < 12:
        return None

    # JPEG: FF D8 FF
    if image_bytes[:3] == b'\xff\xd8\xff':
        return 'image/jpeg'

    # PNG: 89 50 4E 47 0D 0A 1A 0A
    if image_bytes[:8] == b'\x89PNG\r\n\x1a\n':
        return 'image/png'

    # HEIC/HEIF: ftyp, затем brand (heic, heif, mif1 и т.д.)
    if b'ftyp' in image_bytes[:20]:
        header = image_bytes[:20]
        if b'heic' in header or b'heif' in header or b'mif1' in header:
            return 'image/heic'
        if b'hevc' in header or b'hvc1' in header:
            return 'image/heic'

    # GIF: 47 49 46 38
    if image_bytes[:4] == b'GIF8':
        return 'image/gif'

    # WebP: RIFF...WEBP
    if image_bytes[:4] == b'RIFF' and b'WEBP' in image_bytes[8:12]:
        return 'image/webp'

    # BMP: 42 4D
    if image_bytes[:2] == b'BM':
        return 'image/bmp'

    return None


def decode_image_payload(payload: str) -> Tuple[bytes, Optional[str]]:
    """
    Декодирует base64 изображение, в том числе в виде data URI.

    Возвращает (байты, MIME тип из префикса или None).
    Бросает ValueError, если строка не является корректным base64.
    """
    mime_type = None
    data = payload.strip()
    if data.startswith('data:') and ',' in data:
        prefix, data = data.split(',', 1)
        if ';' in prefix:
            mime_type = prefix.split(';')[0].split(':', 1)[1] or None

    try:
        image_bytes = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Некорректный base64: {e}") from e

    if not image_bytes:
        raise ValueError("Пустое изображение")
    return image_bytes, mime_type
