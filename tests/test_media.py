import io
import os

import pytest
from fastapi import UploadFile
from PIL import Image, ImageOps
from starlette.datastructures import Headers

from conftest import auth, image_bytes, report_form
from vecinity.core.config import settings
from vecinity.core.errors import UploadError
from vecinity.services import media


def upload(data: bytes, filename: str = "foto.png", content_type: str = "image/png") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=filename, headers=Headers({"content-type": content_type}))


@pytest.fixture
def storage(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "upload_path", str(tmp_path))
    return tmp_path


def stored_files(root) -> list:
    return [p for p in root.rglob("*") if p.is_file()]


def test_image_is_resized_with_thumbnail(storage):
    items = media.ingest([upload(image_bytes((1600, 900)))])
    assert len(items) == 1
    item = items[0]
    assert item.tipo == "imagen"
    assert item.mime_type == "image/jpeg"
    assert item.nombre_original == "foto.png"
    assert item.url.startswith("http://testserver/uploads/reports/")
    assert item.thumbnail.endswith("_thumb.jpg")

    with Image.open(media.local_path(item.url)) as img:
        assert max(img.size) == 1200
        assert img.size == (1200, 675)
    with Image.open(media.local_path(item.thumbnail)) as thumb:
        assert thumb.size == (300, 300)
    assert item.tamano == os.path.getsize(media.local_path(item.url))


def test_small_image_is_not_enlarged(storage):
    item = media.ingest([upload(image_bytes((400, 200)))])[0]
    with Image.open(media.local_path(item.url)) as img:
        assert img.size == (400, 200)


def test_transparent_png_flattened_to_jpeg(storage):
    item = media.ingest([upload(image_bytes((50, 50), mode="RGBA"))])[0]
    with Image.open(media.local_path(item.url)) as img:
        assert img.format == "JPEG"
        assert img.mode == "RGB"


def test_video_stored_as_is(storage):
    data = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 100
    item = media.ingest([upload(data, "clip.mp4", "video/mp4")], subdir="evidence")[0]
    assert item.tipo == "video"
    assert item.thumbnail is None
    assert item.url.endswith(".mp4")
    assert "/uploads/evidence/" in item.url
    with open(media.local_path(item.url), "rb") as fh:
        assert fh.read() == data


def test_disallowed_type_rejected_before_writing(storage):
    files = [upload(image_bytes()), upload(b"%PDF-1.4", "doc.pdf", "application/pdf")]
    with pytest.raises(UploadError) as exc:
        media.ingest(files)
    assert "application/pdf" in exc.value.message
    assert "image/png" in exc.value.message
    assert stored_files(storage) == []


def test_too_many_files(storage, monkeypatch):
    monkeypatch.setattr(settings, "max_files", 2)
    with pytest.raises(UploadError):
        media.ingest([upload(image_bytes((10, 10))) for _ in range(3)])
    assert stored_files(storage) == []


def test_oversized_file(storage, monkeypatch):
    monkeypatch.setattr(settings, "max_file_size", 1024)
    with pytest.raises(UploadError) as exc:
        media.ingest([upload(b"\x00" * 2048, "big.mp4", "video/mp4")])
    assert "too large" in exc.value.message


def test_total_size_limit(storage, monkeypatch):
    monkeypatch.setattr(settings, "max_total_upload_size", 1500)
    files = [upload(b"\x00" * 1000, f"{i}.mp4", "video/mp4") for i in range(2)]
    with pytest.raises(UploadError):
        media.ingest(files)
    assert stored_files(storage) == []


def test_corrupt_image_rolls_back_earlier_files(storage):
    files = [upload(image_bytes((100, 100))), upload(b"not really a png", "broken.png")]
    with pytest.raises(UploadError):
        media.ingest(files)
    assert stored_files(storage) == []


def test_failed_thumbnail_removes_display_image(storage, monkeypatch):
    def boom(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(ImageOps, "fit", boom)
    with pytest.raises(OSError):
        media.ingest([upload(image_bytes((100, 100)))])
    assert stored_files(storage) == []


def test_oversized_dimensions_rejected(storage, monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    with pytest.raises(UploadError) as exc:
        media.ingest([upload(image_bytes((100, 100)))])
    assert "too large" in exc.value.message
    assert stored_files(storage) == []


def test_oversized_dimensions_is_a_client_error(client, storage, monkeypatch, user, category):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    files = [("files", ("huge.png", image_bytes((100, 100)), "image/png"))]
    r = client.post("/reports", data=report_form(category.id), files=files, headers=auth(user))
    assert r.status_code == 400
    assert stored_files(storage) == []


def test_empty_input():
    assert media.ingest(None) == []
    assert media.ingest([]) == []


def test_public_url_and_local_path(storage):
    path = os.path.join(str(storage), "reports", "abc.jpg")
    url = media.public_url(path)
    assert url == "http://testserver/uploads/reports/abc.jpg"
    assert media.local_path(url) == os.path.normpath(path)
    assert media.local_path("https://cdn.example.com/x.jpg") is None


def test_discard_removes_files(storage):
    items = media.ingest([upload(image_bytes((64, 64)))])
    assert len(stored_files(storage)) == 2
    media.discard(items)
    assert stored_files(storage) == []


def test_avatar_must_be_image(storage):
    with pytest.raises(UploadError):
        media.ingest_avatar(upload(b"\x00" * 10, "clip.mp4", "video/mp4"))
    item = media.ingest_avatar(upload(image_bytes((500, 500)), "me.jpg", "image/jpeg"))
    assert "/uploads/avatars/" in item.url


def test_create_report_with_images(client, storage, user, category):
    files = [
        ("files", ("a.png", image_bytes((800, 600)), "image/png")),
        ("files", ("b.jpg", image_bytes((640, 480), fmt="JPEG"), "image/jpeg")),
    ]
    r = client.post("/reports", data=report_form(category.id), files=files, headers=auth(user))
    assert r.status_code == 201
    multimedia = r.json()["data"]["multimedia"]
    assert [m["nombre_original"] for m in multimedia] == ["a.png", "b.jpg"]
    assert all(m["thumbnail"] for m in multimedia)
    assert len(stored_files(storage)) == 4


def test_rejected_upload_creates_no_report(client, storage, user, category):
    files = [("files", ("x.gif", b"GIF89a", "image/gif"))]
    r = client.post("/reports", data=report_form(category.id), files=files, headers=auth(user))
    assert r.status_code == 400
    assert client.get("/reports").json()["pagination"]["total"] == 0


def test_invalid_report_stores_no_media(client, storage, user, category):
    files = [("files", ("a.png", image_bytes((80, 80)), "image/png"))]
    r = client.post("/reports", data=report_form(category.id, subcategoria="nope"), files=files, headers=auth(user))
    assert r.status_code == 400
    assert stored_files(storage) == []


def test_status_change_with_evidence(client, storage, user, operativo, make_report):
    report = make_report(user)
    files = [("files", ("fix.png", image_bytes((120, 120)), "image/png"))]
    r = client.put(f"/reports/{report.id}/status", data={"estatus": "resuelto", "comentario": "Bache tapado"},
                   files=files, headers=auth(operativo))
    assert r.status_code == 200
    last = r.json()["data"]["historial_estatus"][-1]
    assert len(last["multimedia"]) == 1
    assert "/uploads/evidence/" in last["multimedia"][0]["url"]


def test_unchanged_status_discards_evidence(client, storage, user, operativo, make_report):
    report = make_report(user)
    files = [("files", ("fix.png", image_bytes((120, 120)), "image/png"))]
    r = client.put(f"/reports/{report.id}/status", data={"estatus": "nuevo"}, files=files, headers=auth(operativo))
    assert r.json()["message"] == "Status unchanged"
    assert stored_files(storage) == []
