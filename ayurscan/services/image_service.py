"""
Сервис подготовки изображений перед отправкой провайдеру
"""
import io
import base64
import logging
from dataclasses import dataclass

from PIL import Image, ImageOps

from ayurscan.dependencies import HEIC_SUPPORT
from ayurscan.utils.constants import THUMBNAIL_JPEG_QUALITY, THUMBNAIL_MAX_DIMENSION
from ayurscan.utils.image_utils import detect_image_format

logger = logging.getLogger(__name__)


class ImageProcessingFailed(Exception):
    """Изображение не удалось декодировать или закодировать"""

    kind = "image_processing_failed"
    user_message = "📷 Failed to process image"


@dataclass(frozen=True)
class PreparedImage:
    """Изображение, готовое к отправке: JPEG без EXIF, ориентация применена"""
    data: bytes
    width: int
    height: int
    mime_type: str = "image/jpeg"

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode('utf-8')

    @property
    def size_kb(self) -> float:
        return len(self.data) / 1024


def _to_rgb(image: Image.Image) -> Image.Image:
    """Конвертирует в RGB, прозрачные области заливаются белым"""
    if image.mode in ('RGBA', 'LA', 'P'):
        if image.mode == 'P':
            image = image.convert('RGBA')
        rgb_image = Image.new('RGB', image.size, (255, 255, 255))
        rgb_image.paste(image, mask=image.split()[-1])
        return rgb_image
    if image.mode != 'RGB':
        return image.convert('RGB')
    return image


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    output = io.BytesIO()
    image.save(output, format='JPEG', quality=quality)
    return output.getvalue()


class ImagePreprocessor:
    """
    Приводит фото с камеры или из галереи к единому виду:
    - авто-ориентация EXIF (провайдеры игнорируют тег ориентации)
    - downscale до max_dimension по большей стороне, без увеличения
    - перекодирование в JPEG с заданным качеством

    Повторная подготовка уже подготовленного изображения не меняет
    размеры и ориентацию.
    """

    def __init__(self, max_dimension: int = 1024, quality: int = 80):
        self.max_dimension = max_dimension
        self.quality = quality

    @classmethod
    def from_settings(cls, settings) -> "ImagePreprocessor":
        return cls(max_dimension=settings.image_max_dimension, quality=settings.image_jpeg_quality)

    def prepare(self, image_bytes: bytes) -> PreparedImage:
        source_format = detect_image_format(image_bytes)
        if source_format == 'image/heic' and not HEIC_SUPPORT:
            raise ImageProcessingFailed("Поддержка HEIC не доступна. Установите pillow-heif.")

        try:
            with Image.open(io.BytesIO(image_bytes)) as source:
                image = ImageOps.exif_transpose(source)
                image = _to_rgb(image)

                # Масштабирование с сохранением пропорций
                w, h = image.size
                longest = max(w, h)
                if longest > self.max_dimension:
                    scale = self.max_dimension / longest
                    new_size = (
                        max(1, round(w * scale)),
                        max(1, round(h * scale)),
                    )
                    image = image.resize(new_size, Image.LANCZOS)

                data = _encode_jpeg(image, self.quality)
                width, height = image.size
        except Exception as e:
            logger.error(f"❌ Ошибка подготовки изображения: {e}")
            raise ImageProcessingFailed(str(e)) from e

        prepared = PreparedImage(data=data, width=width, height=height)
        logger.info(f"📸 Изображение готово: {width}x{height}, {prepared.size_kb:.0f} KB")
        return prepared


def make_thumbnail(
    image_bytes: bytes,
    max_dimension: int = THUMBNAIL_MAX_DIMENSION,
    quality: int = THUMBNAIL_JPEG_QUALITY,
) -> str:
    """Миниатюра для истории в виде base64 JPEG"""
    prepared = ImagePreprocessor(max_dimension=max_dimension, quality=quality).prepare(image_bytes)
    return prepared.to_base64()
