"""Synchronous query capability over a rendered page's document."""

from typing import List, Optional, Protocol

from bs4 import BeautifulSoup

NON_VISIBLE_TAGS = ["script", "style", "noscript", "template"]


class PageDocument(Protocol):
    """Narrow, read-only view of a rendered document used by page checks."""

    def title(self) -> str:
        ...

    def visible_text(self) -> str:
        ...

    def count(self, selector: str) -> int:
        ...

    def attributes(self, selector: str, name: str) -> List[str]:
        ...

    def hrefs(self) -> List[str]:
        ...


class HtmlDocument:
    """PageDocument backed by BeautifulSoup.

    The renderer can pass the browser-computed title and ``innerText`` so the
    checks see what the user sees after hydration; otherwise both are derived
    from the markup.
    """

    def __init__(
        self,
        html: str,
        title: Optional[str] = None,
        visible_text: Optional[str] = None,
    ):
        """Parse a document.

        Args:
            html: Serialized document markup
            title: Browser-reported ``document.title``
            visible_text: Browser-reported ``document.body.innerText``
        """
        self.html = html
        self._soup = BeautifulSoup(html, "html.parser")
        self._title = title
        self._visible_text = visible_text

    def title(self) -> str:
        if self._title is not None:
            return self._title
        tag = self._soup.find("title")
        return tag.get_text(strip=True) if tag else ""

    def visible_text(self) -> str:
        if self._visible_text is None:
            body = BeautifulSoup(str(self._soup.body or self._soup), "html.parser")
            for tag in body(NON_VISIBLE_TAGS):
                tag.decompose()
            self._visible_text = body.get_text(separator=" ", strip=True)
        return self._visible_text

    def count(self, selector: str) -> int:
        return len(self._soup.select(selector))

    def attributes(self, selector: str, name: str) -> List[str]:
        """Values of attribute ``name`` on every element matching ``selector``."""
        values = []
        for element in self._soup.select(selector):
            value = element.get(name)
            if value is None:
                continue
            if isinstance(value, list):
                value = " ".join(value)
            values.append(value)
        return values

    def hrefs(self) -> List[str]:
        """Raw href values of every anchor, in document order."""
        return self.attributes("a[href]", "href")
