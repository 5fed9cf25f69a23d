"""Tests for the linux.org.ru source."""

from datetime import datetime, timezone

import httpx
import pytest

from account_linker.adapters.sources import LinuxOrgRuSource
from account_linker.adapters.sources.linux_org_ru import parse_timestamp
from account_linker.core import AdapterError, AdapterKind

SEARCH_PAGE = """
<html><body>
<div class="messages">
  <article class="msg">
    <h2><a href="/forum/talks/100?cid=2">Which distro?</a></h2>
    <div class="msg_body">
      <p>Second comment</p>
      <div class="sign">
        <a itemprop="creator" href="/people/alice/profile">alice</a>
        <time datetime="2018-03-01T12:30:00.000+03:00">01.03.18 12:30</time>
      </div>
    </div>
  </article>
  <article class="msg">
    <h2><a href="/forum/talks/100?cid=1">Which distro?</a></h2>
    <div class="msg_body">
      <p>Hello!</p>
      <p>I love lor-bot!</p>
      <div class="sign">
        <a itemprop="creator" href="/people/alice/profile">alice</a>
        <time datetime="2018-03-01T10:00:00">01.03.18 10:00</time>
      </div>
    </div>
  </article>
  <article class="msg">
    <h2><a href="/forum/talks/101?cid=3">No time</a></h2>
    <div class="msg_body"><p>Missing timestamp</p></div>
  </article>
  <article class="msg">
    <h2><a href="/forum/talks/100?cid=2">Which distro?</a></h2>
    <div class="msg_body">
      <p>Second comment</p>
      <time datetime="2018-03-01T12:30:00.000+03:00">01.03.18 12:30</time>
    </div>
  </article>
</div>
</body></html>
"""


def test_parse_comments() -> None:
    items = LinuxOrgRuSource().parse_comments(SEARCH_PAGE, "alice")

    assert len(items) == 2
    oldest, newest = items
    assert oldest.timestamp == datetime(2018, 3, 1, 7, 0, tzinfo=timezone.utc)
    assert newest.timestamp == datetime(2018, 3, 1, 9, 30, tzinfo=timezone.utc)
    assert oldest.body == "Hello!\nI love lor-bot!"
    assert oldest.contains("I love lor-bot!")
    assert oldest.author == "alice"
    assert oldest.title == "Which distro?"
    assert oldest.url == "https://www.linux.org.ru/forum/talks/100?cid=1"
    assert "sign" not in oldest.body_html


def test_parse_empty_page() -> None:
    assert LinuxOrgRuSource().parse_comments("<html><body></body></html>", "alice") == []


def test_parse_timestamp() -> None:
    assert parse_timestamp("2018-03-01T12:30:00Z") == datetime(2018, 3, 1, 12, 30, tzinfo=timezone.utc)
    assert parse_timestamp("2018-03-01T12:30:00") == datetime(2018, 3, 1, 9, 30, tzinfo=timezone.utc)
    assert parse_timestamp("yesterday") is None


@pytest.mark.asyncio
async def test_poll_requests_user_comments() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/search.jsp"
        assert request.url.params["user"] == "alice"
        assert request.url.params["range"] == "COMMENTS"
        assert request.url.params["sort"] == "DATE"
        return httpx.Response(200, text=SEARCH_PAGE)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        source = LinuxOrgRuSource(client=client)
        items = await source.poll("alice")

    assert source.kind is AdapterKind.LINUX_ORG_RU
    assert len(items) == 2


@pytest.mark.asyncio
async def test_poll_bad_status_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(AdapterError, match="503"):
            await LinuxOrgRuSource(client=client).poll("alice")


@pytest.mark.asyncio
async def test_poll_timeout_raises_adapter_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(AdapterError, match="request failed"):
            await LinuxOrgRuSource(client=client).poll("alice")
