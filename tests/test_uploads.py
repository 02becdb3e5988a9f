import io
import struct
import zlib
import pytest
from PIL import Image
from botocore.exceptions import ClientError
from starlette.datastructures import Headers, UploadFile

from cryptostickers.admin import uploads
from cryptostickers.admin.uploads import UploadCandidate
from cryptostickers.exceptions import InvalidImageException
from cryptostickers.routers.admin import read_candidate


def make_image_bytes(fmt="PNG"):
    """Generate a simple valid image in-memory."""
    img = Image.new("RGB", (10, 10), color="red")
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def png(name="a.png"):
    return UploadCandidate(filename=name, content_type="image/png", data=make_image_bytes("PNG"))


def png_with_dimensions(width, height):
    """A tiny PNG whose header claims the given size."""
    def chunk(kind, body):
        crc = zlib.crc32(kind + body) & 0xFFFFFFFF
        return struct.pack(">I", len(body)) + kind + body + struct.pack(">I", crc)

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(b"\0"))
        + chunk(b"IEND", b"")
    )


# ------------------------------
# validate_upload_batch
# ------------------------------

def test_validate_batch_ok():
    jpeg = UploadCandidate("b.jpg", "image/jpeg", make_image_bytes("JPEG"))
    uploads.validate_upload_batch([png(), jpeg])


def test_validate_rejects_oversized_png():
    big = UploadCandidate("big.png", "image/png", b"\x89PNG" + b"\0" * (6 * 1024 * 1024))
    with pytest.raises(InvalidImageException) as exc:
        uploads.validate_upload_batch([big])
    assert "big.png: file too large (maximum 5 MB)" in exc.value.detail


def test_validate_rejects_whole_batch_and_lists_every_problem():
    batch = [
        png("good.png"),
        UploadCandidate("notes.txt", "text/plain", b"hello"),
        UploadCandidate("fake.png", "image/png", b"notanimage"),
    ]
    with pytest.raises(InvalidImageException) as exc:
        uploads.validate_upload_batch(batch)
    assert "notes.txt: invalid file type text/plain" in exc.value.detail
    assert "fake.png: not a valid image file" in exc.value.detail
    assert "good.png" not in exc.value.detail


def test_validate_rejects_mismatched_content():
    batch = [UploadCandidate("x.gif", "image/gif", make_image_bytes("PNG"))]
    with pytest.raises(InvalidImageException):
        uploads.validate_upload_batch(batch)


def test_validate_rejects_empty_batch():
    with pytest.raises(InvalidImageException):
        uploads.validate_upload_batch([])


def test_validate_rejects_huge_dimensions_in_small_file():
    bomb = UploadCandidate("bomb.png", "image/png", png_with_dimensions(20000, 20000))
    assert bomb.size < 1024
    with pytest.raises(InvalidImageException) as exc:
        uploads.validate_upload_batch([png("good.png"), bomb])
    assert "bomb.png: image dimensions too large" in exc.value.detail


def test_validate_uses_declared_size_without_reading():
    unread = UploadCandidate("big.png", "image/png", declared_size=6 * 1024 * 1024)
    with pytest.raises(InvalidImageException) as exc:
        uploads.validate_upload_batch([unread])
    assert "big.png: file too large (maximum 5 MB)" in exc.value.detail


# ------------------------------
# random_object_name
# ------------------------------

def test_random_object_name_keeps_extension():
    name = uploads.random_object_name("My Doge.PNG", "image/png")
    assert name.endswith(".png")
    assert "doge" not in name.lower()
    assert name != uploads.random_object_name("My Doge.PNG", "image/png")


def test_random_object_name_without_extension_uses_mime():
    assert uploads.random_object_name("sticker", "image/webp").endswith(".webp")


# ------------------------------
# upload_images
# ------------------------------

def test_upload_images_success(mocker):
    mock_db = mocker.Mock()
    mock_s3 = mocker.Mock()
    mock_s3.public_url.side_effect = lambda key: f"https://cdn.example/{key}"

    outcome = uploads.upload_images(mock_db, mock_s3, [png("a.png"), png("b.png")], ["moon"])

    assert outcome.failed is None
    assert len(outcome.uploaded) == 2
    assert all(img.tags == ["moon"] for img in outcome.uploaded)
    assert outcome.uploaded[0].url.startswith("https://cdn.example/")
    assert mock_s3.upload.call_count == 2
    assert mock_db.put_image.call_count == 2


def test_upload_images_without_tags_stores_null(mocker):
    mock_db = mocker.Mock()
    mock_s3 = mocker.Mock()
    mock_s3.public_url.return_value = "https://cdn.example/x.png"

    outcome = uploads.upload_images(mock_db, mock_s3, [png()], [])

    assert outcome.uploaded[0].tags is None
    assert mock_db.put_image.call_args.args[0]["tags"] is None


def test_upload_images_stops_at_first_failure(mocker):
    mock_db = mocker.Mock()
    mock_s3 = mocker.Mock()
    mock_s3.public_url.return_value = "https://cdn.example/x.png"
    mock_s3.upload.side_effect = [None, ClientError({"Error": {"Code": "500", "Message": "down"}}, "PutObject"), None]

    outcome = uploads.upload_images(mock_db, mock_s3, [png("1.png"), png("2.png"), png("3.png")])

    assert len(outcome.uploaded) == 1
    assert outcome.failed.filename == "2.png"
    assert outcome.failed.detail.startswith("Upload error")
    assert mock_s3.upload.call_count == 2
    assert mock_db.put_image.call_count == 1


# ------------------------------
# reading request files
# ------------------------------

@pytest.mark.asyncio
async def test_read_candidate_skips_body_of_oversized_file():
    file = UploadFile(
        file=io.BytesIO(make_image_bytes("PNG")),
        size=6 * 1024 * 1024,
        filename="big.png",
        headers=Headers({"content-type": "image/png"}),
    )
    candidate = await read_candidate(file)
    assert candidate.data == b""
    assert candidate.size == 6 * 1024 * 1024
    assert candidate.content_type == "image/png"


@pytest.mark.asyncio
async def test_read_candidate_reads_small_file():
    data = make_image_bytes("PNG")
    file = UploadFile(
        file=io.BytesIO(data),
        size=len(data),
        filename="small.png",
        headers=Headers({"content-type": "image/png"}),
    )
    candidate = await read_candidate(file)
    assert candidate.data == data
    assert candidate.filename == "small.png"
