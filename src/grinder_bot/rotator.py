from __future__ import annotations

import logging

from grinder_bot.market_state import SharedMarketState

LOGGER = logging.getLogger("grinder_bot")


def effective_total(total_intent_count: int) -> int:
    if total_intent_count <= 0:
        LOGGER.info("intent_catalog_empty total=%s treating_as=1", total_intent_count)
        return 1
    return int(total_intent_count)


def next_intent_ids(cursor: int, page_size: int, total_intent_count: int) -> list[int]:
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    total = effective_total(total_intent_count)
    return [(cursor + i) % total for i in range(page_size)]


def advance(cursor: int, page_size: int, total_intent_count: int) -> int:
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    total = effective_total(total_intent_count)
    return (cursor + page_size) % total


class IntentRotator:
    """Walks the intent catalog one page per cycle, wrapping at the catalog size."""

    def __init__(self, state: SharedMarketState, page_size: int = 1) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self.state = state
        self.page_size = page_size

    def peek(self) -> list[int]:
        return next_intent_ids(self.state.cursor, self.page_size, self.state.total_intent_count)

    def commit(self) -> int:
        # Uses the same total the page was built from unless a refresh landed in
        # between; either way the cursor stays inside the current catalog.
        cursor = advance(self.state.cursor, self.page_size, self.state.total_intent_count)
        self.state.set_cursor(cursor)
        return cursor
