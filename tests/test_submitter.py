from __future__ import annotations

import unittest
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from grinder_bot.models import Operation, ValidatedBatch
from grinder_bot.submitter import BatchSubmitter, gas_ceiling
from tests.helpers import FakeChain


def _batch() -> ValidatedBatch:
    return ValidatedBatch(pool_ids=(3, 8), ops=(Operation.LONG_BUY, Operation.HEDGE_REBUY))


class SubmitterTests(unittest.TestCase):
    def test_gas_ceiling_default_multiplier(self) -> None:
        self.assertEqual(gas_ceiling(100_000), 140_000)
        self.assertEqual(gas_ceiling(7, 14, 10), 9)

    def test_live_submit_uses_inflated_gas_limit(self) -> None:
        chain = FakeChain()
        result = BatchSubmitter(chain, live=True).submit(_batch(), unit_cost=200_000)
        self.assertEqual(result.status, "submitted")
        self.assertEqual(result.tx_hash, "0xabc123")
        self.assertEqual(result.gas_limit, 280_000)
        self.assertEqual(
            chain.calls[-1],
            ("apply_batch", (3, 8), (Operation.LONG_BUY, Operation.HEDGE_REBUY), 280_000),
        )

    def test_batch_simulation_false_aborts(self) -> None:
        chain = FakeChain(batch_ok=False)
        result = BatchSubmitter(chain, live=True).submit(_batch(), unit_cost=200_000)
        self.assertEqual(result.status, "rejected")
        self.assertNotIn("apply_batch", chain.call_names())

    def test_submission_error_is_reported_not_raised(self) -> None:
        chain = FakeChain(submit_error="nonce too low")
        result = BatchSubmitter(chain, live=True).submit(_batch(), unit_cost=10)
        self.assertEqual(result.status, "error")
        self.assertIn("nonce too low", result.reason)
        self.assertEqual(chain.call_names().count("apply_batch"), 1)

    def test_paper_mode_simulates_but_never_sends(self) -> None:
        chain = FakeChain()
        result = BatchSubmitter(chain, live=False).submit(_batch(), unit_cost=100)
        self.assertEqual(result.status, "paper")
        self.assertEqual(result.gas_limit, 140)
        self.assertEqual(chain.call_names(), ["can_apply_batch"])

    def test_empty_batch_issues_no_calls(self) -> None:
        chain = FakeChain()
        result = BatchSubmitter(chain, live=True).submit(ValidatedBatch(), unit_cost=100)
        self.assertEqual(result.status, "empty")
        self.assertEqual(chain.calls, [])

    def test_rejects_non_positive_multiplier(self) -> None:
        with self.assertRaises(ValueError):
            BatchSubmitter(FakeChain(), numerator=0)


if __name__ == "__main__":
    unittest.main()
