"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Metrics adapters for loader observability.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

# Upper bounds for the keys-per-dispatch histogram.
BATCH_SIZE_BUCKETS: tuple[float, ...] = (1, 2, 5, 10, 25, 50, 100, 250, 500, 1000)


class LoaderMetrics(Protocol):
    """Minimal metrics interface for loader instrumentation."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        """Increment a counter metric."""

    def observe(
        self, name: str, value: float, *, tags: Mapping[str, str] | None = None
    ) -> None:
        """Record one sample of a distribution metric."""


class NoOpLoaderMetrics:
    """Default metrics sink when no metrics backend is provided."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        _ = name
        _ = value
        _ = tags

    def observe(
        self, name: str, value: float, *, tags: Mapping[str, str] | None = None
    ) -> None:
        _ = name
        _ = value
        _ = tags


class PrometheusLoaderMetrics(LoaderMetrics):
    """
    Prometheus-backed loader metrics adapter.

    Requires `prometheus_client` package. Counters and histograms are created
    on first use in `registry` (the default registry when omitted). Observed
    samples land in histograms bucketed by `batch_size_buckets`, sized for the
    keys-per-dispatch distribution.
    """

    def __init__(
        self,
        *,
        namespace: str = "",
        registry: Any | None = None,
        batch_size_buckets: Sequence[float] = BATCH_SIZE_BUCKETS,
    ) -> None:
        try:
            from prometheus_client import REGISTRY, Counter, Histogram
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "PrometheusLoaderMetrics requires `prometheus_client` to be installed."
            ) from exc

        self._counter_cls = Counter
        self._histogram_cls = Histogram
        self._namespace = namespace
        self._registry = registry if registry is not None else REGISTRY
        self._buckets = tuple(batch_size_buckets)
        self._instruments: dict[tuple[str, tuple[str, ...]], Any] = {}

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        self._labelled(self._counter_cls, name, tags).inc(value)

    def observe(
        self, name: str, value: float, *, tags: Mapping[str, str] | None = None
    ) -> None:
        self._labelled(self._histogram_cls, name, tags, buckets=self._buckets).observe(
            value
        )

    def _labelled(
        self,
        kind: Any,
        name: str,
        tags: Mapping[str, str] | None,
        **extra: Any,
    ) -> Any:
        tags = tags or {}
        label_names = tuple(sorted(tags))
        instrument = self._instruments.get((name, label_names))
        if instrument is None:
            instrument = kind(
                name=name,
                documentation=f"Batch loader metric {name}",
                namespace=self._namespace,
                labelnames=label_names,
                registry=self._registry,
                **extra,
            )
            self._instruments[(name, label_names)] = instrument
        if not label_names:
            return instrument
        return instrument.labels(*(str(tags[label]) for label in label_names))
