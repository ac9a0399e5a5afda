"""Transparent timing for pipeline nodes.

Provides a ``@timed_node`` decorator and a ``collect_metrics()`` context
manager.  Node modules stay pure scoring logic while every decorated
function records its duration into whichever request is collecting.

Usage in a node module::

    from ..timing import timed_node

    @timed_node("top_k", "scoring")
    def select_top_k(frequencies: dict[str, int], k: int) -> dict[str, int]:
        ...

Usage in the pipeline::

    with collect_metrics() as metrics:
        keywords = top_k.select_top_k(state.keywords, limit)
        svg = word_cloud.generate_word_cloud(keywords)
    report = build_report(metrics)

Metrics live in a ``ContextVar`` so concurrent requests on the same event
loop never see each other's timings.
"""

from __future__ import annotations

import contextvars
import functools
import logging
import time

from .models import NodeMetrics

log = logging.getLogger(__name__)

_current_metrics: contextvars.ContextVar[list[NodeMetrics] | None] = (
    contextvars.ContextVar("_current_metrics", default=None)
)


class collect_metrics:
    """Context manager that activates metric collection for ``@timed_node``.

    Yields a ``list[NodeMetrics]`` that decorated functions append to
    automatically.
    """

    def __enter__(self) -> list[NodeMetrics]:
        self._metrics: list[NodeMetrics] = []
        self._token = _current_metrics.set(self._metrics)
        return self._metrics

    def __exit__(self, *exc) -> None:
        _current_metrics.reset(self._token)


def timed_node(name: str, node_type: str):
    """Decorator that records the duration of a pipeline node.

    Consecutive calls to the same node within one collection (the
    aggregator runs once per comment in a batch) are folded into a single
    ``NodeMetrics`` entry.  Outside ``collect_metrics`` the function runs
    without recording.
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            metrics = _current_metrics.get(None)
            t0 = time.perf_counter_ns()
            result = fn(*args, **kwargs)
            _record(metrics, name, node_type, t0)
            return result

        return wrapper

    return decorator


def build_report(metrics: list[NodeMetrics]) -> dict:
    """Build the structured report dict from node metrics."""
    total_ms = sum(m.duration_ms for m in metrics)
    scoring_ms = sum(m.duration_ms for m in metrics if m.node_type == "scoring")
    rendering_ms = sum(m.duration_ms for m in metrics if m.node_type == "rendering")

    return {
        "total_duration_ms": total_ms,
        "scoring_duration_ms": scoring_ms,
        "rendering_duration_ms": rendering_ms,
        "nodes": [
            {
                "node": m.node_name,
                "type": m.node_type,
                "duration_ms": m.duration_ms,
                "items_processed": m.items_processed,
            }
            for m in metrics
        ],
    }


def _record(
    metrics: list[NodeMetrics] | None,
    name: str,
    node_type: str,
    t0: int,
) -> None:
    """Compute duration and append to (or fold into) the metrics list."""
    duration_ms = (time.perf_counter_ns() - t0) // 1_000_000
    log.debug("%s: %d ms", name, duration_ms)
    if metrics is None:
        return
    if metrics and metrics[-1].node_name == name:
        metrics[-1].duration_ms += duration_ms
        metrics[-1].items_processed += 1
        return
    metrics.append(NodeMetrics(name, node_type, duration_ms, items_processed=1))
