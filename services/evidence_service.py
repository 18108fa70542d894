import asyncio
from typing import Any, Dict, List, Optional

from models.enums import RequestKind
from models.exceptions import ValidationError
from models.message_model import EvidenceDeleteResult, EvidenceUpload
from services.media_service import MediaService
from logger.logger import logger

ID_PHOTO_FOLDER = "id_photos"
MAX_EVIDENCE_PHOTOS = 3


def extract_evidence_urls(message: Dict[str, Any]) -> List[str]:
    """
    Every photo URL a message references: ID photo, item or evidence photos,
    and the counter photo. Order is preserved and duplicates dropped.
    """
    urls: List[str] = []
    for kind in RequestKind:
        record = message.get(kind.data_field)
        if not record:
            continue
        urls.append(record.get("id_photo_url"))
        for photo in record.get("evidence_photos") or []:
            urls.append(photo.get("url") if isinstance(photo, dict) else getattr(photo, "url", None))
        urls.append(record.get("owner_id_photo"))

    seen = set()
    result = []
    for url in urls:
        if url and url not in seen:
            seen.add(url)
            result.append(url)
    return result


class EvidenceService:
    """Upload, validation and best-effort deletion of request photos"""

    def __init__(self, media: MediaService, upload_concurrency: int = 3):
        self.media = media
        self.upload_concurrency = max(1, upload_concurrency)

    def validate_url(self, url: Optional[str], label: str = "Photo URL") -> str:
        if not url:
            raise ValidationError(f"{label} is required")
        if not self.media.is_trusted_url(url):
            raise ValidationError(f"{label} is not a trusted media URL: {url}")
        return url

    async def upload_evidence(
        self,
        kind: RequestKind,
        files: List[EvidenceUpload],
        id_photo: bool = False,
    ) -> List[str]:
        """
        Upload files for a request and return their URLs in input order.

        Uploads run in batches of upload_concurrency; an ID photo upload
        takes exactly one file.
        """
        if not files:
            raise ValidationError("No files to upload")
        if id_photo and len(files) != 1:
            raise ValidationError("Upload exactly one ID photo")
        if not id_photo and len(files) > MAX_EVIDENCE_PHOTOS:
            raise ValidationError(f"At most {MAX_EVIDENCE_PHOTOS} photos per request")

        folder = ID_PHOTO_FOLDER if id_photo else kind.photo_folder
        urls: List[str] = []
        for start in range(0, len(files), self.upload_concurrency):
            batch = files[start:start + self.upload_concurrency]
            uploaded = await asyncio.gather(*[
                self.media.upload(f.data, f.filename, f.content_type, folder) for f in batch
            ])
            urls.extend(uploaded)

        for url in urls:
            self.validate_url(url, "Uploaded photo URL")
        logger.info(f"Uploaded {len(urls)} photo(s) to {folder}")
        return urls

    async def delete_evidence(self, urls: List[str]) -> EvidenceDeleteResult:
        """Delete every URL; never raises, failures are reported in the result"""
        result = EvidenceDeleteResult()
        if not urls:
            return result

        async def _delete(url: str) -> bool:
            try:
                return await self.media.delete(url)
            except Exception as e:
                logger.warning(f"Failed to delete media {url}: {e}")
                return False

        outcomes = await asyncio.gather(*[_delete(url) for url in urls])
        for url, deleted in zip(urls, outcomes):
            (result.deleted if deleted else result.failed).append(url)
        logger.info(f"Media cleanup: {len(result.deleted)} deleted, {len(result.failed)} failed")
        return result
