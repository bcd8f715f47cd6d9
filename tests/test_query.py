from __future__ import annotations

from tgjpg.query import parse_image_query


def test_parse_image_query_static() -> None:
    query = parse_image_query("cute cat.jpg")

    assert query is not None
    assert query.text == "cute cat"
    assert query.extension == "jpg"
    assert query.is_animated is False


def test_parse_image_query_gif_is_animated() -> None:
    query = parse_image_query("funny dance.gif")

    assert query is not None
    assert query.text == "funny dance"
    assert query.is_animated is True


def test_parse_image_query_extension_is_case_insensitive() -> None:
    query = parse_image_query("Doge.GIF")

    assert query is not None
    assert query.extension == "gif"
    assert query.is_animated is True


def test_parse_image_query_accepts_jpeg_and_png() -> None:
    assert parse_image_query("a.jpeg") is not None
    assert parse_image_query("a.png") is not None


def test_parse_image_query_keeps_inner_dots() -> None:
    query = parse_image_query("v1.2 release.png")

    assert query is not None
    assert query.text == "v1.2 release"


def test_parse_image_query_rejects_plain_text() -> None:
    assert parse_image_query("hello there") is None
    assert parse_image_query("look at this.webp") is None
    assert parse_image_query(".jpg") is None
