from __future__ import annotations

from grinder_bot.models import Operation, PoolPositionState


def select_candidates(state: PoolPositionState) -> list[Operation]:
    """
    Ops worth simulating for a pool, highest priority first.

      long empty                      -> long buy
      long open, below max            -> long sell, then long buy
      long at max, no hedge           -> long sell, then hedge sell
      long at max, hedge open         -> hedge rebuy, then hedge sell
    """
    long = state.long
    if long.count == 0:
        return [Operation.LONG_BUY]
    if long.count < long.max_count:
        return [Operation.LONG_SELL, Operation.LONG_BUY]
    if state.hedge.count == 0:
        return [Operation.LONG_SELL, Operation.HEDGE_SELL]
    return [Operation.HEDGE_REBUY, Operation.HEDGE_SELL]
