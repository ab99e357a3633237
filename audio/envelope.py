"""Parameter automation for audio primitives.

``Automation`` records a timeline of set / linear-ramp / exponential-ramp
events (the same vocabulary as a Web Audio ``AudioParam``) and renders it to a
per-frame numpy curve. It is used both for amplitude envelopes and for
frequency sweeps.

Semantics:
- Before the first event the initial value holds.
- A ramp runs from the previous event's (time, value) to its own.
- An exponential ramp needs both endpoints non-zero with the same sign;
  otherwise the previous value holds until the ramp's end time.
- After the last event its value holds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal

import numpy as np

RampKind = Literal["set", "linear", "exponential"]


@dataclass(frozen=True)
class AutomationEvent:
    kind: RampKind
    value: float
    time_s: float


class Automation:
    def __init__(self, initial: float = 0.0) -> None:
        self._initial = float(initial)
        self._events: List[AutomationEvent] = []

    # ---- Timeline construction ------------------------------------------------

    def set_value_at_time(self, value: float, time_s: float) -> "Automation":
        return self._add(AutomationEvent("set", float(value), float(time_s)))

    def linear_ramp_to(self, value: float, time_s: float) -> "Automation":
        return self._add(AutomationEvent("linear", float(value), float(time_s)))

    def exponential_ramp_to(self, value: float, time_s: float) -> "Automation":
        return self._add(AutomationEvent("exponential", float(value), float(time_s)))

    def _add(self, event: AutomationEvent) -> "Automation":
        if event.time_s < 0:
            raise ValueError("automation times are relative to the source start and must be >= 0")
        if self._events and event.time_s < self._events[-1].time_s:
            raise ValueError("automation events must be added in time order")
        self._events.append(event)
        return self

    # ---- Inspection -----------------------------------------------------------

    @property
    def events(self) -> tuple[AutomationEvent, ...]:
        return tuple(self._events)

    @property
    def end_time(self) -> float:
        return self._events[-1].time_s if self._events else 0.0

    @property
    def final_value(self) -> float:
        return self._events[-1].value if self._events else self._initial

    def value_at(self, time_s: float) -> float:
        curve = self._evaluate(np.asarray([time_s], dtype=np.float64))
        return float(curve[0])

    # ---- Rendering ------------------------------------------------------------

    def render(self, n_frames: int, sample_rate: int) -> np.ndarray:
        """Curve value at each frame time ``i / sample_rate``."""
        t = np.arange(int(n_frames), dtype=np.float64) / float(sample_rate)
        return self._evaluate(t)

    def _evaluate(self, t: np.ndarray) -> np.ndarray:
        out = np.full(t.shape, self._initial, dtype=np.float64)
        prev_t, prev_v = 0.0, self._initial
        for ev in self._events:
            if ev.kind != "set" and ev.time_s > prev_t:
                mask = (t >= prev_t) & (t < ev.time_s)
                frac = (t[mask] - prev_t) / (ev.time_s - prev_t)
                if ev.kind == "linear":
                    out[mask] = prev_v + (ev.value - prev_v) * frac
                elif prev_v * ev.value > 0:
                    out[mask] = prev_v * (ev.value / prev_v) ** frac
                else:
                    out[mask] = prev_v
            out[t >= ev.time_s] = ev.value
            prev_t, prev_v = ev.time_s, ev.value
        return out


__all__ = ["Automation", "AutomationEvent", "RampKind"]
