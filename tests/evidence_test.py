import asyncio
import io

import pytest
from PIL import Image

from models.enums import RequestKind
from models.exceptions import ValidationError
from models.message_model import EvidenceUpload
from services.evidence_service import extract_evidence_urls
from services.media_service import process_image
from tests.fakes import BUCKET, build_services, media_url


def png_bytes(size=(64, 48), mode="RGBA"):
    buffer = io.BytesIO()
    Image.new(mode, size, (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


def upload(name="wallet.png", content_type="image/png", data=None):
    return EvidenceUpload(filename=name, content_type=content_type, data=data or png_bytes())


@pytest.mark.parametrize("url,trusted", [
    (media_url("a.webp"), True),
    ("http://media/lostfound/a.webp", True),
    ("https://MEDIA/lostfound/a.webp", True),
    ("https://media.evil.com/lostfound/a.webp", False),
    ("javascript:alert(1)", False),
    ("//media/lostfound/a.webp", False),
    ("", False),
    (None, False),
])
def test_trusted_url(url, trusted):
    svc = build_services()
    assert svc.media.is_trusted_url(url) is trusted


def test_validate_url_names_the_field():
    svc = build_services()
    with pytest.raises(ValidationError, match="ID photo URL"):
        svc.evidence.validate_url("https://elsewhere/x.jpg", "ID photo URL")
    with pytest.raises(ValidationError, match="required"):
        svc.evidence.validate_url(None)


def test_object_name_only_inside_bucket():
    svc = build_services()
    assert svc.media.object_name_from_url(media_url("a.webp", "id_photos")) == "id_photos/a.webp"
    assert svc.media.object_name_from_url("https://media/otherbucket/a.webp") is None
    assert svc.media.object_name_from_url(f"https://media/{BUCKET}/") is None


def test_extract_covers_every_photo_once():
    message = {
        "claim_data": {
            "id_photo_url": "u-id",
            "evidence_photos": [{"url": "u-1"}, {"url": "u-2"}, {"url": "u-1"}],
            "owner_id_photo": "u-owner",
        },
    }
    assert extract_evidence_urls(message) == ["u-id", "u-1", "u-2", "u-owner"]


def test_extract_ignores_empty_fields():
    message = {"handover_data": {"id_photo_url": "", "evidence_photos": [], "owner_id_photo": None}}
    assert extract_evidence_urls(message) == []
    assert extract_evidence_urls({"text": "plain"}) == []


def test_images_become_webp():
    data, content_type = asyncio.run(process_image(png_bytes(size=(4000, 1000)), max_size=(1000, 1000)))

    assert content_type == "image/webp"
    image = Image.open(io.BytesIO(data))
    assert image.format == "WEBP"
    assert image.size == (1000, 250)


def test_unreadable_image_is_rejected():
    with pytest.raises(ValidationError):
        asyncio.run(process_image(b"definitely not an image"))


def test_upload_evidence_to_kind_folder():
    svc = build_services()

    urls = asyncio.run(svc.evidence.upload_evidence(
        RequestKind.CLAIM, [upload("a.png"), upload("b.png"), upload("c.png")]
    ))

    assert len(urls) == 3
    for url in urls:
        assert url.startswith(f"https://media/{BUCKET}/evidence_photos/")
        assert url.endswith(".webp")
        assert svc.media.is_trusted_url(url)
    assert len(svc.minio.objects) == 3


def test_upload_id_photo():
    svc = build_services()

    urls = asyncio.run(svc.evidence.upload_evidence(RequestKind.HANDOVER, [upload()], id_photo=True))

    assert urls[0].startswith(f"https://media/{BUCKET}/id_photos/")
    with pytest.raises(ValidationError):
        asyncio.run(svc.evidence.upload_evidence(RequestKind.HANDOVER, [upload(), upload()], id_photo=True))


def test_upload_limits():
    svc = build_services()
    with pytest.raises(ValidationError):
        asyncio.run(svc.evidence.upload_evidence(RequestKind.HANDOVER, []))
    with pytest.raises(ValidationError):
        asyncio.run(svc.evidence.upload_evidence(RequestKind.HANDOVER, [upload() for _ in range(4)]))
    with pytest.raises(ValidationError):
        asyncio.run(svc.evidence.upload_evidence(
            RequestKind.HANDOVER, [upload("notes.txt", "text/plain", b"hello")]
        ))
    assert svc.minio.objects == {}


def test_delete_evidence_never_raises():
    svc = build_services()
    good = media_url("a.webp")
    bad = media_url("b.webp")
    svc.minio.failing.add("item_photos/b.webp")

    result = asyncio.run(svc.evidence.delete_evidence([good, bad, "https://elsewhere/c.webp"]))

    assert result.deleted == [good]
    assert sorted(result.failed) == sorted([bad, "https://elsewhere/c.webp"])
    assert svc.minio.removed == ["item_photos/a.webp"]


def test_delete_nothing():
    svc = build_services()
    result = asyncio.run(svc.evidence.delete_evidence([]))
    assert result.deleted == [] and result.failed == []
