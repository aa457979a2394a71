from __future__ import annotations

import logging

from grinder_bot.errors import SubmissionError
from grinder_bot.models import SubmissionResult, ValidatedBatch

LOGGER = logging.getLogger("grinder_bot")


def gas_ceiling(unit_cost: int, numerator: int = 14, denominator: int = 10) -> int:
    return int(unit_cost) * int(numerator) // int(denominator)


class BatchSubmitter:
    def __init__(self, chain, numerator: int = 14, denominator: int = 10, live: bool = False) -> None:
        if numerator <= 0 or denominator <= 0:
            raise ValueError("gas multiplier terms must be positive")
        self.chain = chain
        self.numerator = numerator
        self.denominator = denominator
        self.live = live

    def submit(self, batch: ValidatedBatch, unit_cost: int) -> SubmissionResult:
        if batch.is_empty:
            return SubmissionResult(status="empty")

        # State may have moved since the per-pool checks.
        if not self.chain.can_apply_batch(batch.pool_ids, batch.ops):
            LOGGER.warning("batch_grind_op_rejected pools=%s ops=%s", list(batch.pool_ids), batch.op_codes())
            return SubmissionResult(status="rejected", reason="batch simulation returned false")

        gas_limit = gas_ceiling(unit_cost, self.numerator, self.denominator)
        if not self.live:
            LOGGER.info(
                "paper_submit pools=%s ops=%s gas_limit=%s",
                list(batch.pool_ids),
                batch.op_codes(),
                gas_limit,
            )
            return SubmissionResult(status="paper", gas_limit=gas_limit)

        try:
            tx_hash = self.chain.apply_batch(batch.pool_ids, batch.ops, gas_limit)
        except SubmissionError as exc:
            LOGGER.warning("batch_submit_failed pools=%s error=%s", list(batch.pool_ids), exc)
            return SubmissionResult(status="error", gas_limit=gas_limit, reason=str(exc))
        LOGGER.info("batch_submitted tx=%s pools=%s gas_limit=%s", tx_hash, len(batch), gas_limit)
        return SubmissionResult(status="submitted", tx_hash=tx_hash, gas_limit=gas_limit)
