from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SharedMarketState:
    """
    Process-wide values shared by the periodic tasks.

    Field ownership (one writer each, any number of readers):
      price_estimate      <- price refresh task
      total_intent_count  <- intent count refresh task
      cursor              <- decision cycle

    Writes replace the attribute wholesale, so readers see either the old or the
    new value. Readers must accept values that are one or more refresh periods old;
    there is no snapshot across fields.
    """

    price_estimate: float
    total_intent_count: int = 1
    cursor: int = 0

    def set_price_estimate(self, price: float) -> None:
        self.price_estimate = float(price)

    def set_total_intent_count(self, count: int) -> None:
        self.total_intent_count = int(count)

    def set_cursor(self, cursor: int) -> None:
        self.cursor = int(cursor)
