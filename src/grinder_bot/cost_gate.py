from __future__ import annotations

import logging

from grinder_bot.config import WEI_PER_ETH
from grinder_bot.models import CostDecision, ValidatedBatch

LOGGER = logging.getLogger("grinder_bot")


def fiat_cost(unit_cost: float, unit_price: float, price_estimate: float, unit_scale: float = WEI_PER_ETH) -> float:
    """
    gas * (wei / gas) / (wei / ETH) * (USD / ETH) = USD
    """
    return (float(unit_cost) * float(unit_price)) / float(unit_scale) * float(price_estimate)


def verify_tx_cost(
    unit_cost: float,
    unit_price: float,
    price_estimate: float,
    max_cost: float,
    unit_scale: float = WEI_PER_ETH,
) -> bool:
    return fiat_cost(unit_cost, unit_price, price_estimate, unit_scale) < float(max_cost)


def batch_budget(batch_len: int, per_pool_cap: float) -> float:
    return float(per_pool_cap) * max(0, int(batch_len))


class CostGate:
    def __init__(self, per_pool_cap: float, unit_scale: int = WEI_PER_ETH) -> None:
        self.per_pool_cap = per_pool_cap
        self.unit_scale = unit_scale

    def evaluate(
        self,
        batch: ValidatedBatch,
        unit_cost: int,
        unit_price: int,
        price_estimate: float,
    ) -> CostDecision:
        budget = batch_budget(len(batch), self.per_pool_cap)
        cost = fiat_cost(unit_cost, unit_price, price_estimate, self.unit_scale)
        if cost < budget:
            return CostDecision(allowed=True, fiat_cost=cost, budget=budget)
        LOGGER.info(
            "cost_gate_skip pools=%s gas=%s gas_price=%s eth_usd=%.2f cost=$%.6f budget=$%.6f",
            len(batch),
            unit_cost,
            unit_price,
            price_estimate,
            cost,
            budget,
        )
        return CostDecision(allowed=False, fiat_cost=cost, budget=budget, reason="tx cost over budget")
