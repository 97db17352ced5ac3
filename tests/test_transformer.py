"""Тесты преобразования записей БД в запрос к Laia."""

from recognizer.schemas import Picture
from recognizer.services.transformer import build_line_images, resolve_url


def test_relative_url_is_prefixed_with_fileserver():
    assert resolve_url("/img/a.png", "https://files") == "https://files/img/a.png"


def test_absolute_url_passes_through():
    assert resolve_url("http://cdn/a.png", "https://files") == "http://cdn/a.png"
    assert resolve_url("https://cdn/a.png", "https://files") == "https://cdn/a.png"


def test_build_line_images_keeps_order_and_ids():
    pictures = [
        Picture.model_validate({"Id": "b", "Url": "/b.png"}),
        Picture.model_validate({"Id": "a", "Url": "https://cdn/a.png"}),
    ]

    line_imgs = build_line_images(pictures, "https://files")

    assert [img.id for img in line_imgs] == ["b", "a"]
    assert [img.url for img in line_imgs] == ["https://files/b.png", "https://cdn/a.png"]
    assert line_imgs[0].model_dump(by_alias=True) == {
        "Id": "b",
        "Url": "https://files/b.png",
    }


def test_empty_batch_gives_empty_request():
    assert build_line_images([], "https://files") == []


def test_absolute_url_scheme_is_case_insensitive():
    assert resolve_url("HTTPS://cdn/x.png", "https://files") == "HTTPS://cdn/x.png"
    assert resolve_url("Http://cdn/x.png", "https://files") == "Http://cdn/x.png"
