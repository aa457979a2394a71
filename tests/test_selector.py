from __future__ import annotations

import unittest
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from grinder_bot.models import Operation
from grinder_bot.selector import select_candidates
from tests.helpers import make_state


class SelectorTests(unittest.TestCase):
    def test_empty_long_only_buys(self) -> None:
        self.assertEqual(select_candidates(make_state(0, 5)), [Operation.LONG_BUY])
        self.assertEqual(select_candidates(make_state(0, 5, hedge_count=3)), [Operation.LONG_BUY])

    def test_empty_long_with_zero_max_still_buys(self) -> None:
        self.assertEqual(select_candidates(make_state(0, 0)), [Operation.LONG_BUY])

    def test_open_long_below_max_prefers_sell(self) -> None:
        self.assertEqual(
            select_candidates(make_state(1, 5)),
            [Operation.LONG_SELL, Operation.LONG_BUY],
        )
        self.assertEqual(
            select_candidates(make_state(4, 5, hedge_count=2)),
            [Operation.LONG_SELL, Operation.LONG_BUY],
        )

    def test_full_long_without_hedge(self) -> None:
        self.assertEqual(
            select_candidates(make_state(5, 5, hedge_count=0)),
            [Operation.LONG_SELL, Operation.HEDGE_SELL],
        )

    def test_full_long_with_hedge_prefers_rebuy(self) -> None:
        self.assertEqual(
            select_candidates(make_state(5, 5, hedge_count=1)),
            [Operation.HEDGE_REBUY, Operation.HEDGE_SELL],
        )

    def test_count_over_max_treated_as_full(self) -> None:
        self.assertEqual(
            select_candidates(make_state(6, 5, hedge_count=2)),
            [Operation.HEDGE_REBUY, Operation.HEDGE_SELL],
        )

    def test_op_codes_match_contract_enum(self) -> None:
        self.assertEqual(
            [int(op) for op in Operation],
            [0, 1, 2, 3],
        )


if __name__ == "__main__":
    unittest.main()
