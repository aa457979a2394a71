from __future__ import annotations


class GrinderError(RuntimeError):
    pass


class RemoteReadError(GrinderError):
    """A read against the chain (count, intents, positions, simulation) failed."""


class SubmissionError(GrinderError):
    """The batch write failed or was rejected before inclusion."""


class PriceFeedError(GrinderError):
    pass
