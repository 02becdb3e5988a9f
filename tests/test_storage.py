from cryptostickers.storage import s3
from cryptostickers.settings import settings


# ------------------------------
# public URLs
# ------------------------------

def test_public_url_default(monkeypatch):
    monkeypatch.setattr(settings, "storage_public_url", None)
    monkeypatch.setattr(settings, "aws_endpoint_url", None)
    assert s3.public_url("a.png") == "https://stickers.s3.us-east-1.amazonaws.com/a.png"
    assert s3.public_origin() == "https://stickers.s3.us-east-1.amazonaws.com"


def test_public_url_custom_endpoint(monkeypatch):
    monkeypatch.setattr(settings, "storage_public_url", None)
    monkeypatch.setattr(settings, "aws_endpoint_url", "http://localhost:4566")
    assert s3.public_url("a.png") == "http://localhost:4566/stickers/a.png"
    assert s3.public_origin() == "http://localhost:4566"


def test_public_url_cdn(monkeypatch):
    monkeypatch.setattr(settings, "storage_public_url", "https://cdn.example/stickers/")
    assert s3.public_url("a.png") == "https://cdn.example/stickers/a.png"
    assert s3.public_origin() == "https://cdn.example"


def test_object_name_from_url():
    assert s3.object_name_from_url("https://cdn.example/stickers/a.png") == "a.png"
    assert s3.object_name_from_url("https://cdn.example/") == ""
    assert s3.object_name_from_url("") == ""
