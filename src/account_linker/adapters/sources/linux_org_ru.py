"""linux.org.ru comment source."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup, Tag

from account_linker.core import AdapterError, AdapterKind, ContentAdapter, Item

LOGGER = logging.getLogger(__name__)

# Site times without an offset are Moscow time
MOSCOW_TZ = timezone(timedelta(hours=3))


class LinuxOrgRuSource(ContentAdapter):
    """Fetch the latest comments of a linux.org.ru user from the search page."""

    kind = AdapterKind.LINUX_ORG_RU
    name = "linux.org.ru"

    def __init__(
        self,
        timeout: float = 30.0,
        base_url: str = "https://www.linux.org.ru/",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.timeout = timeout
        self.base_url = base_url
        self.client = client

    @property
    def search_url(self) -> str:
        return urljoin(self.base_url, "search.jsp")

    async def poll(self, specifier: str) -> list[Item]:
        """Fetch comments of a user, oldest first."""
        params = {"range": "COMMENTS", "sort": "DATE", "user": specifier}
        url = self.search_url

        try:
            if self.client is not None:
                response = await self.client.get(url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url, params=params)
        except httpx.HTTPError as e:
            raise AdapterError(f"{self.name} request failed: {e}") from e

        if response.status_code != 200:
            raise AdapterError(f"{self.name} returned invalid code: {response.status_code}")

        items = self.parse_comments(response.text, specifier)
        LOGGER.debug("Fetched %d comments of %s", len(items), specifier)
        return items

    def parse_comments(self, html: str, user_name: str) -> list[Item]:
        """Extract comments from a search result page."""
        soup = BeautifulSoup(html, "html.parser")

        messages = soup.select("article.msg") or soup.select("div.msg")
        items: list[Item] = []
        seen: set[tuple[str, datetime]] = set()

        for message in messages:
            item = self._parse_message(message, user_name)
            if item is None:
                continue
            key = (item.url, item.timestamp)
            if key in seen:
                continue
            seen.add(key)
            items.append(item)

        items.sort(key=lambda item: item.timestamp)
        return items

    def _parse_message(self, message: Tag, user_name: str) -> Optional[Item]:
        time_tag = message.find("time")
        if time_tag is None or not time_tag.get("datetime"):
            return None

        timestamp = parse_timestamp(time_tag["datetime"])
        if timestamp is None:
            LOGGER.debug("Skipping comment with bad timestamp %r", time_tag["datetime"])
            return None

        title = ""
        url = ""
        title_link = message.select_one("h2 a[href], .msg-title a[href], h1 a[href]")
        if title_link is None:
            title_link = message.find("a", href=True)
        if title_link is not None:
            title = title_link.get_text(strip=True)
            url = urljoin(self.base_url, title_link["href"])

        author_tag = message.select_one('a[itemprop="creator"]')
        author = author_tag.get_text(strip=True) if author_tag is not None else user_name

        body_tag = message.select_one("div.msg_body, .msg_body")
        if body_tag is None:
            return None

        # Drop signature and reply links from the body
        for extra in body_tag.select(".sign, .reply, .msg_body-footer"):
            extra.decompose()

        paragraphs = [p.get_text(" ", strip=True) for p in body_tag.find_all("p")]
        body = "\n".join(p for p in paragraphs if p) or body_tag.get_text(" ", strip=True)
        body_html = "".join(str(child) for child in body_tag.children).strip()

        return Item(
            author=author,
            title=title,
            url=url or self.base_url,
            body=body,
            body_html=body_html,
            timestamp=timestamp,
        )


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, assuming Moscow time when no offset is given."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=MOSCOW_TZ)
    return parsed.astimezone(timezone.utc)
