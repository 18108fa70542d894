# services/media_service.py
import asyncio
import io
import os
import uuid
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from minio import Minio
from PIL import Image, UnidentifiedImageError

from models.exceptions import ValidationError
from logger.logger import logger


async def process_image(image_data: bytes, max_size: Tuple[int, int] = (1920, 1080), quality: int = 85) -> Tuple[bytes, str]:
    """
    Process and compress an image, converting it to WebP format

    Args:
        image_data: Raw image data in bytes
        max_size: Maximum dimensions (width, height)
        quality: Compression quality (1-100)

    Returns:
        Tuple of (processed_image_bytes, content_type)
    """
    try:
        image = Image.open(io.BytesIO(image_data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError(f"Uploaded file is not a readable image: {e}") from e

    logger.debug(f"[Image Processing] Original image size: {image.size}, mode: {image.mode}")

    # Flatten transparency onto white
    if image.mode in ('RGBA', 'LA'):
        background = Image.new('RGB', image.size, (255, 255, 255))
        background.paste(image, mask=image.split()[-1])
        image = background
    elif image.mode != 'RGB':
        image = image.convert('RGB')

    # Resize if larger than max_size while maintaining aspect ratio
    if image.size[0] > max_size[0] or image.size[1] > max_size[1]:
        image.thumbnail(max_size, Image.Resampling.LANCZOS)

    output = io.BytesIO()
    image.save(output, format='WEBP', quality=quality, optimize=True)
    processed_data = output.getvalue()
    logger.debug(f"[Image Processing] Converted to WebP, {len(processed_data)} bytes")

    return processed_data, 'image/webp'


class MediaService:
    """
    MinIO-backed media store.

    Objects live at {bucket}/{folder}/{uuid}.webp and are addressed from the
    outside by {public_url}/{bucket}/{object_name}. The minio client is
    blocking, so every call runs in a worker thread.
    """

    def __init__(
        self,
        minio_client: Minio,
        bucket: str,
        public_url: str,
        trusted_hosts: List[str],
    ):
        self.minio_client = minio_client
        self.bucket = bucket
        self.public_url = public_url.rstrip('/')
        self.trusted_hosts = [h.lower() for h in trusted_hosts]

    def url_for(self, object_name: str) -> str:
        return f"{self.public_url}/{self.bucket}/{object_name}"

    def is_trusted_url(self, url: Optional[str]) -> bool:
        if not url or not isinstance(url, str):
            return False
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and parsed.netloc.lower() in self.trusted_hosts

    def object_name_from_url(self, url: str) -> Optional[str]:
        """Object key inside our bucket, or None for URLs that do not point into it"""
        if not self.is_trusted_url(url):
            return None
        path = urlparse(url).path.lstrip('/')
        prefix = f"{self.bucket}/"
        if not path.startswith(prefix) or len(path) == len(prefix):
            return None
        return path[len(prefix):]

    async def upload(self, data: bytes, filename: str, content_type: str, folder: str) -> str:
        """
        Upload one file and return its canonical URL

        Images are re-encoded to WebP first; anything else is refused.
        """
        if not content_type or not content_type.startswith('image/'):
            raise ValidationError(f"{filename} is not an image")

        processed_data, content_type = await process_image(data)
        file_extension = 'webp'
        object_name = f"{folder}/{uuid.uuid4()}.{file_extension}"
        logger.info(f"[MinIO Upload] {os.path.basename(filename)} -> {self.bucket}/{object_name} ({len(processed_data)} bytes)")

        await asyncio.to_thread(
            self.minio_client.put_object,
            bucket_name=self.bucket,
            object_name=object_name,
            data=io.BytesIO(processed_data),
            length=len(processed_data),
            content_type=content_type,
        )
        return self.url_for(object_name)

    async def delete(self, url: str) -> bool:
        """Remove the object behind url; raises on store errors, False for foreign URLs"""
        object_name = self.object_name_from_url(url)
        if object_name is None:
            return False
        await asyncio.to_thread(self.minio_client.remove_object, self.bucket, object_name)
        return True
