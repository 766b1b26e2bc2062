"""Net worth aggregation package."""

from finsight.networth.aggregator import NetWorthAggregator

__all__ = ["NetWorthAggregator"]
