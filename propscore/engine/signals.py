"""
Behavior signal aggregation and batch normalization.

Raw events are reduced to one SignalAggregate per property; every metric is
then rescaled into [0, 1] against the batch-wide maximum of that metric.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from ..data.base import BehaviorSignal

_COUNTERS = {"view": "views", "click": "clicks", "save": "saves", "inquiry": "inquiries"}


def normalize(value: float, max_value: float, min_value: float = 0.0) -> float:
    """Clamp ``(value - min) / (max - min)`` into [0, 1]; a degenerate range gives 0."""
    if max_value <= min_value:
        return 0.0
    return max(0.0, min(1.0, (value - min_value) / (max_value - min_value)))


@dataclass
class SignalAggregate:
    views: float = 0.0
    clicks: float = 0.0
    saves: float = 0.0
    inquiries: float = 0.0
    dwell_sum: float = 0.0
    dwell_count: int = 0

    @property
    def avg_dwell(self) -> float:
        return self.dwell_sum / self.dwell_count if self.dwell_count > 0 else 0.0


@dataclass(frozen=True)
class BatchMaxima:
    views: float = 1.0
    saves: float = 1.0
    inquiries: float = 1.0
    clicks: float = 1.0
    dwell: float = 1.0


def _value(raw: Optional[float], default: float) -> float:
    if raw is None:
        return default
    try:
        v = float(raw)
    except (TypeError, ValueError):
        return default
    return v if math.isfinite(v) else default


def aggregate_signals(
    signals: Iterable[BehaviorSignal],
    favorite_property_ids: Iterable[Optional[str]] = (),
    active_ids: Optional[set] = None,
) -> dict[str, SignalAggregate]:
    """
    Sum signal values per (property, type). A missing value counts as one
    event for the counters and as zero seconds for dwell time. Each favorite
    row is one implicit save. Rows without a property id are skipped, as are
    properties outside ``active_ids`` when it is given.
    """
    agg: dict[str, SignalAggregate] = {}

    def bucket(pid) -> Optional[SignalAggregate]:
        if not pid:
            return None
        pid = str(pid)
        if active_ids is not None and pid not in active_ids:
            return None
        return agg.setdefault(pid, SignalAggregate())

    for s in signals:
        a = bucket(s.property_id)
        if a is None:
            continue
        if s.signal_type == "dwell_time":
            a.dwell_sum += _value(s.signal_value, 0.0)
            a.dwell_count += 1
        elif s.signal_type in _COUNTERS:
            attr = _COUNTERS[s.signal_type]
            setattr(a, attr, getattr(a, attr) + _value(s.signal_value, 1.0))

    for pid in favorite_property_ids:
        a = bucket(pid)
        if a is not None:
            a.saves += 1

    return agg


def batch_maxima(aggregates: Iterable[SignalAggregate]) -> BatchMaxima:
    """Per-metric maximum over the batch, floored at 1 so denominators are never zero."""
    aggs = list(aggregates)
    return BatchMaxima(
        views=max([1.0] + [a.views for a in aggs]),
        saves=max([1.0] + [a.saves for a in aggs]),
        inquiries=max([1.0] + [a.inquiries for a in aggs]),
        clicks=max([1.0] + [a.clicks for a in aggs]),
        dwell=max([1.0] + [a.avg_dwell for a in aggs]),
    )
