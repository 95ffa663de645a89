"""
Static-HTML implementation of the ``Page`` collaborator.
"""

from __future__ import annotations

from typing import List, Optional

import structlog
from selectolax.parser import HTMLParser

from lessongate.protocols import MutationListener, MutationRecord

logger = structlog.get_logger(__name__)

MAIN_CONTENT_SELECTOR = "main, article, .content, .post, .entry"


class HtmlPage:
    """
    A page backed by an HTML string and parsed with selectolax.

    Hosts that render the page elsewhere call :meth:`replace_html` (or just
    :meth:`notify`) to push mutation batches to subscribers.
    """

    def __init__(self, html: str, url: str = "", title: Optional[str] = None) -> None:
        self._url = url
        self._listeners: List[MutationListener] = []
        self._title_override = title
        self._load(html)

    def _load(self, html: str) -> None:
        self._tree = HTMLParser(html)
        title_node = self._tree.css_first("title")
        if self._title_override is not None:
            self._title = self._title_override
        else:
            self._title = title_node.text(strip=True) if title_node else ""
        root = self._tree.css_first("html")
        self._lang = root.attributes.get("lang") if root is not None else None

    @property
    def url(self) -> str:
        return self._url

    @property
    def title(self) -> str:
        return self._title

    @property
    def lang(self) -> Optional[str]:
        return self._lang

    @property
    def tree(self) -> HTMLParser:
        return self._tree

    def subscribe(self, listener: MutationListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: MutationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    def notify(self, mutations: List[MutationRecord]) -> None:
        for listener in list(self._listeners):
            listener(mutations)

    def replace_html(self, html: str, mutations: List[MutationRecord]) -> None:
        """Swap in a new document and emit the mutations that produced it."""
        self._load(html)
        logger.debug("Page content replaced", url=self._url, mutations=len(mutations))
        self.notify(mutations)


def structural_fingerprint(tree: HTMLParser) -> str:
    """
    Cheap structural hash of the main content area.

    Two renders with the same counts of headings, paragraphs, images, links
    and top-level children are treated as the same page for caching.
    """
    container = tree.css_first(MAIN_CONTENT_SELECTOR) or tree.body
    if container is None:
        return "0-0-0-0-0"
    headings = len(container.css("h1, h2, h3, h4, h5, h6"))
    paragraphs = len(container.css("p"))
    images = len(container.css("img"))
    links = len(container.css("a"))
    children = sum(1 for node in container.iter(include_text=False))
    return f"{headings}-{paragraphs}-{images}-{links}-{children}"
