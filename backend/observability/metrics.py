"""
Round-trip latency samples for the probe client.

Responsibilities:
- Collect elapsed durations (monotonic nanoseconds) in send order
- Compute the mean single-message duration
- Render the summary as a JSONL event

Design notes:
- Durations come from time.monotonic_ns() (immune to clock changes)
- The summary pairs size × count bytes with the MEAN single-message
  duration, not the total elapsed time. It is an approximation and is
  reported that way on purpose.
"""

from __future__ import annotations

from typing import Any, Iterator

from observability.logger import now_ms


class LatencySamples:
    """
    Ordered sequence of round-trip durations for one probe run.

    Consumed once at the end of the run to produce the summary.
    """

    def __init__(self, *, size: int) -> None:
        if size < 0:
            raise ValueError("size must be >= 0")

        self.size = size
        self._elapsed_ns: list[int] = []

    # -------------------------
    # Collection
    # -------------------------

    def record(self, elapsed_ns: int) -> None:
        self._elapsed_ns.append(elapsed_ns)

    def __len__(self) -> int:
        return len(self._elapsed_ns)

    def __iter__(self) -> Iterator[int]:
        return iter(self._elapsed_ns)

    # -------------------------
    # Aggregates
    # -------------------------

    def total_bytes(self) -> int:
        return self.size * len(self._elapsed_ns)

    def mean_ns(self) -> float:
        """
        Arithmetic mean of the recorded durations.

        Raises:
            ValueError if no sample was recorded.
        """
        if not self._elapsed_ns:
            raise ValueError("no latency samples recorded")
        return sum(self._elapsed_ns) / len(self._elapsed_ns)

    def summary_event(self, **fields: Any) -> dict[str, Any] | None:
        """
        Build the PROBE_SUMMARY event, or None when there is nothing to report.
        """
        if not self._elapsed_ns:
            return None

        mean_ns = self.mean_ns()
        return {
            "ts_ms": now_ms(),
            "event_type": "PROBE_SUMMARY",
            **fields,
            "samples": len(self._elapsed_ns),
            "bytes": self.total_bytes(),
            "mean_ns": mean_ns,
            "mean_ms": mean_ns / 1_000_000,
        }
