from __future__ import annotations

import httpx
import pytest

from tgjpg.image_search import (
    ImageSearchClient,
    ImageSearchError,
    NoCandidatesError,
    extract_data_ou,
    extract_image_urls,
    extract_quoted_urls,
    extract_redirect_params,
    extract_structured_array,
)

_STRUCTURED_BODY = (
    'AF_initDataCallback({data:[null,[["https://encrypted-tbn0.gstatic.com/a.jpg",'
    '90,90],["https://cdn.example.com/dance.gif",480,270]]]});'
    '<img src="https://other.example.com/quoted.jpg">'
    '<script>var s = "https://other.example.com/quoted.jpg";</script>'
)


def test_structured_array_extracts_and_filters_thumbnails() -> None:
    assert extract_structured_array(_STRUCTURED_BODY) == [
        "https://cdn.example.com/dance.gif"
    ]


def test_structured_array_decodes_escaped_ampersand_and_equals() -> None:
    body = '["https://img.example.com/pic.jpg?w\\u003d1\\u0026h\\u003d2",640,480]'

    assert extract_structured_array(body) == ["https://img.example.com/pic.jpg?w=1&h=2"]


def test_structured_array_wins_over_quoted_urls() -> None:
    assert extract_image_urls(_STRUCTURED_BODY) == ["https://cdn.example.com/dance.gif"]


def test_quoted_url_fallback_when_no_structured_array() -> None:
    body = (
        '<script>var a = "https://www.google.com/images/googlelogo.png";'
        'var b = "https://pics.example.net/cat.png";'
        'var c = "https://pics.example.net/cat2.jpeg";</script>'
    )

    assert extract_image_urls(body) == [
        "https://pics.example.net/cat.png",
        "https://pics.example.net/cat2.jpeg",
    ]


def test_redirect_param_strategy_decodes_and_strips_query() -> None:
    body = (
        '<a href="/imgres?imgurl=https%3A%2F%2Fcdn.example.com%2Fdance.gif'
        '%3Fsize%3Dlarge&amp;imgrefurl=https%3A%2F%2Fblog.example.com">x</a>'
        '<a href="/imgres?imgurl=https%3A%2F%2Fencrypted-tbn0.gstatic.com%2Fx.gif">'
    )

    assert extract_quoted_urls(body) == []
    assert extract_redirect_params(body) == ["https://cdn.example.com/dance.gif"]
    assert extract_image_urls(body) == ["https://cdn.example.com/dance.gif"]


def test_data_ou_strategy_is_last_resort() -> None:
    body = (
        "<html><body>"
        '<div class="rg_meta" data-ou="https://photos.example.org/view?id=1"></div>'
        '<div data-ou="https://ssl.gstatic.com/logo?x=1"></div>'
        "</body></html>"
    )

    assert extract_data_ou(body) == ["https://photos.example.org/view?id=1"]
    assert extract_image_urls(body) == ["https://photos.example.org/view?id=1"]


def test_data_ou_handles_bodies_without_attribute() -> None:
    assert extract_data_ou("") == []
    assert extract_data_ou("<html></html>") == []


def test_thumbnail_hosts_never_returned() -> None:
    body = "".join(
        f'["https://encrypted-tbn{i}.gstatic.com/t{i}.jpg",10,10]' for i in range(5)
    ) + '"https://www.gstatic.com/ui/logo.png"'

    assert extract_image_urls(body) == []


def test_every_strategy_caps_at_ten() -> None:
    structured = "".join(
        f'["https://img.example.com/{i}.jpg",100,100]' for i in range(25)
    )
    quoted = "".join(f'"https://img.example.com/{i}.png" ' for i in range(25))
    redirect = "".join(
        f"<a href='/imgres?imgurl=https%3A%2F%2Fimg.example.com%2F{i}.gif'>"
        for i in range(25)
    )

    assert len(extract_structured_array(structured)) == 10
    assert extract_structured_array(structured)[0] == "https://img.example.com/0.jpg"
    assert len(extract_quoted_urls(quoted)) == 10
    assert len(extract_redirect_params(redirect)) == 10


def test_nothing_extractable_returns_empty() -> None:
    assert extract_image_urls("<html><body>No results</body></html>") == []


@pytest.mark.anyio
async def test_search_sends_provider_params_and_returns_urls() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text=_STRUCTURED_BODY)

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport) as http_client:
        client = ImageSearchClient(
            http_client=http_client,
            endpoint="https://search.example/search",
            locale="zh-TW",
            user_agent="TestAgent/1.0",
        )
        urls = await client.search("funny dance", True)

    assert urls == ["https://cdn.example.com/dance.gif"]
    params = seen[0].url.params
    assert params["q"] == "funny dance"
    assert params["tbs"] == "ift:gif"
    assert params["tbm"] == "isch"
    assert params["hl"] == "zh-TW"
    assert seen[0].headers["User-Agent"] == "TestAgent/1.0"
    assert seen[0].headers["Accept-Language"].startswith("zh-TW")


@pytest.mark.anyio
async def test_search_static_uses_jpg_filter() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text='["https://a.example/b.jpg",1,1]')

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport) as http_client:
        client = ImageSearchClient(http_client=http_client)
        await client.search("cat", False)

    assert seen[0].url.params["tbs"] == "ift:jpg"


@pytest.mark.anyio
async def test_search_without_candidates_raises_no_candidates() -> None:
    transport = httpx.MockTransport(
        lambda _: httpx.Response(200, text="<html>nothing here</html>")
    )
    async with httpx.AsyncClient(transport=transport) as http_client:
        client = ImageSearchClient(http_client=http_client)
        with pytest.raises(NoCandidatesError):
            await client.search("nothing", False)


@pytest.mark.anyio
async def test_search_never_returns_more_than_ten() -> None:
    body = "".join(f'["https://img.example.com/{i}.jpg",100,100]' for i in range(40))
    transport = httpx.MockTransport(lambda _: httpx.Response(200, text=body))
    async with httpx.AsyncClient(transport=transport) as http_client:
        client = ImageSearchClient(http_client=http_client)
        urls = await client.search("many", False)

    assert len(urls) == 10


@pytest.mark.anyio
async def test_search_maps_http_status_error() -> None:
    transport = httpx.MockTransport(lambda _: httpx.Response(429, text="slow down"))
    async with httpx.AsyncClient(transport=transport) as http_client:
        client = ImageSearchClient(http_client=http_client)
        with pytest.raises(ImageSearchError) as exc:
            await client.search("cat", False)

    assert not isinstance(exc.value, NoCandidatesError)
    assert "429" in exc.value.user_message


@pytest.mark.anyio
async def test_search_maps_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport) as http_client:
        client = ImageSearchClient(http_client=http_client)
        with pytest.raises(ImageSearchError):
            await client.search("cat", False)
