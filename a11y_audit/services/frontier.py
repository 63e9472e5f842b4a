"""Crawl frontier: the work queue plus its deduplication set."""

import logging
from collections import deque
from typing import Deque, List, Optional, Set

from a11y_audit.services.normalizer import in_scope, normalise_url

logger = logging.getLogger(__name__)


class Frontier:
    """FIFO queue of URLs awaiting audit; every URL is admitted at most once.

    ``offer`` performs its membership check and both insertions without
    yielding to the event loop, so admission is atomic with respect to any
    other coroutine sharing the frontier.
    """

    def __init__(self, scope_prefix: str, strip_fragments: bool = False):
        self.scope_prefix = scope_prefix
        self.strip_fragments = strip_fragments
        self._visited: Set[str] = set()
        self._order: List[str] = []
        self._queue: Deque[str] = deque()

    def seed(self, url: str) -> None:
        """Enqueue the crawl root without any scope check."""
        url = normalise_url(url, self.strip_fragments)
        if url in self._visited:
            return
        self._admit(url)

    def offer(self, url: str) -> bool:
        """Admit *url* if it is in scope and unseen.  Returns whether it was admitted."""
        url = normalise_url(url, self.strip_fragments)
        if not in_scope(url, self.scope_prefix):
            logger.debug("Frontier: out of scope %s", url)
            return False
        if url in self._visited:
            logger.debug("Frontier: already seen %s", url)
            return False
        self._admit(url)
        return True

    def next(self) -> Optional[str]:
        """Pop the next URL, or return None when the queue is empty."""
        if not self._queue:
            return None
        return self._queue.popleft()

    @property
    def visited(self) -> List[str]:
        """Every admitted URL, in admission order."""
        return list(self._order)

    @property
    def pending(self) -> int:
        return len(self._queue)

    def _admit(self, url: str) -> None:
        self._visited.add(url)
        self._order.append(url)
        self._queue.append(url)

    def __contains__(self, url: str) -> bool:
        return normalise_url(url, self.strip_fragments) in self._visited

    def __len__(self) -> int:
        return len(self._visited)
