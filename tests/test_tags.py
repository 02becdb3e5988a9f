import pytest
from botocore.exceptions import ClientError

from cryptostickers.admin import tags
from cryptostickers.gallery.models import Tag
from cryptostickers.exceptions import (
    DuplicateTagException,
    InvalidTagException,
    TagCascadeException,
    TagNotFoundException,
)


def client_error():
    return ClientError({"Error": {"Code": "InternalServerError", "Message": "boom"}}, "UpdateItem")


# ------------------------------
# sanitize_tag_name
# ------------------------------

@pytest.mark.parametrize("raw, expected", [
    ("  DOGE_Coin!! ", "doge-coin"),
    ("moon", "moon"),
    ("To The Moon", "to-the-moon"),
    ("--a---b--", "a-b"),
    ("pepe 2024", "pepe-2024"),
    ("!!!", ""),
])
def test_sanitize_tag_name(raw, expected):
    assert tags.sanitize_tag_name(raw) == expected


@pytest.mark.parametrize("name", ["doge-coin", "moon", "a-b", "x1"])
def test_sanitize_is_idempotent(name):
    assert tags.sanitize_tag_name(tags.sanitize_tag_name(name)) == tags.sanitize_tag_name(name)
    assert tags.sanitize_tag_name(name) == name


# ------------------------------
# validate_new_tag
# ------------------------------

def test_validate_rejects_empty():
    with pytest.raises(InvalidTagException):
        tags.validate_new_tag("  ?? ", [])


def test_validate_rejects_too_long():
    with pytest.raises(InvalidTagException) as exc:
        tags.validate_new_tag("a" * 51, [])
    assert "maximum 50" in exc.value.detail


def test_validate_accepts_max_length():
    assert tags.validate_new_tag("a" * 50, []) == "a" * 50


def test_validate_rejects_duplicate_after_sanitizing():
    with pytest.raises(DuplicateTagException):
        tags.validate_new_tag("Doge Coin", ["doge-coin"])


# ------------------------------
# normalize_image_tags
# ------------------------------

def test_normalize_image_tags_dedupes_and_nulls_empty():
    assert tags.normalize_image_tags(["moon", "doge", "moon"], ["doge", "moon"]) == ["moon", "doge"]
    assert tags.normalize_image_tags([], ["doge"]) is None
    assert tags.normalize_image_tags(None, ["doge"]) is None


def test_normalize_image_tags_rejects_unknown():
    with pytest.raises(InvalidTagException):
        tags.normalize_image_tags(["pepe"], ["doge"])


# ------------------------------
# add_tag
# ------------------------------

def test_add_tag_writes_sanitized_name(mocker):
    mock_db = mocker.Mock()
    tag = tags.add_tag(mock_db, "  DOGE_Coin!! ", existing=[Tag(name="moon")])
    assert tag.name == "doge-coin"
    mock_db.put_tag.assert_called_once()
    assert mock_db.put_tag.call_args.args[0]["name"] == "doge-coin"


def test_add_tag_duplicate_makes_no_write(mocker):
    mock_db = mocker.Mock()
    with pytest.raises(DuplicateTagException):
        tags.add_tag(mock_db, "Moon", existing=[Tag(name="moon")])
    mock_db.put_tag.assert_not_called()


# ------------------------------
# delete_tag
# ------------------------------

def test_delete_tag_cascades(mocker):
    mock_db = mocker.Mock()
    mock_db.scan_images.return_value = [
        {"id": "1", "tags": ["doge", "moon"]},
        {"id": "2", "tags": ["moon"]},
    ]
    mock_db.delete_tags_by_name.return_value = 1

    updated = tags.delete_tag(mock_db, "moon")

    assert updated == ["1", "2"]
    mock_db.scan_images.assert_called_once_with(tag="moon")
    mock_db.update_image.assert_has_calls([
        mocker.call("1", {"tags": ["doge"]}),
        mocker.call("2", {"tags": None}),
    ])
    mock_db.delete_tags_by_name.assert_called_once_with("moon")


def test_delete_tag_partial_failure_keeps_tag(mocker):
    mock_db = mocker.Mock()
    mock_db.scan_images.return_value = [
        {"id": "1", "tags": ["moon"]},
        {"id": "2", "tags": ["moon"]},
    ]
    mock_db.update_image.side_effect = [{"id": "1"}, client_error()]

    with pytest.raises(TagCascadeException) as exc:
        tags.delete_tag(mock_db, "moon")

    assert exc.value.updated_image_ids == ["1"]
    assert exc.value.status_code == 500
    mock_db.delete_tags_by_name.assert_not_called()


def test_delete_unknown_tag(mocker):
    mock_db = mocker.Mock()
    mock_db.scan_images.return_value = []
    mock_db.delete_tags_by_name.return_value = 0
    with pytest.raises(TagNotFoundException):
        tags.delete_tag(mock_db, "pepe")
