"""
Audio Parameters - Sample-accurate automation.

An AudioParam holds an intrinsic value plus a timeline of automation
events. Connected nodes add to the automated value sample by sample
(modulation), and the sum is clamped to the parameter's range.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from spatia.graph.context import AudioContext
    from spatia.graph.nodes import AudioNode


logger = logging.getLogger(__name__)


class AutomationKind(Enum):
    """Shape of an automation event."""

    SET = "set"
    LINEAR_RAMP = "linear_ramp"


@dataclass(frozen=True)
class AutomationEvent:
    """One point on a parameter timeline."""

    kind: AutomationKind
    time: float
    value: float


class AudioParam:
    """
    Automatable audio parameter.

    Scheduling a new value cancels every event at or after its time, so
    the most recent command always wins.

    Example:
        gain.gain.set_value_at_time(0.0, ctx.current_time)
        gain.gain.linear_ramp_to_value_at_time(0.3, ctx.current_time + 0.5)
    """

    def __init__(
        self,
        context: "AudioContext",
        value: float,
        min_value: float = -math.inf,
        max_value: float = math.inf,
        name: str = "",
    ):
        self.context = context
        self.name = name
        self.default_value = float(value)
        self.min_value = min_value
        self.max_value = max_value

        self._value = float(value)
        self._events: list[AutomationEvent] = []
        self._inputs: list["AudioNode"] = []

    # -- Automation -------------------------------------------------------

    @property
    def value(self) -> float:
        """Automated value at the context's current time (without modulation)."""
        return self._clamp(self._value_at(self.context.current_time))

    @value.setter
    def value(self, value: float) -> None:
        self.set_value_at_time(value, self.context.current_time)

    @property
    def events(self) -> tuple[AutomationEvent, ...]:
        return tuple(self._events)

    def set_value_at_time(self, value: float, start_time: float) -> "AudioParam":
        """Jump to value at start_time."""
        self._check_time(start_time)
        self.cancel_scheduled_values(start_time)
        self._events.append(AutomationEvent(AutomationKind.SET, start_time, float(value)))
        return self

    def linear_ramp_to_value_at_time(self, value: float, end_time: float) -> "AudioParam":
        """
        Ramp linearly from the current value to value, arriving at end_time.

        The ramp starts now, from wherever the parameter currently is,
        including mid-way through an earlier ramp.
        """
        self._check_time(end_time)
        now = self.context.current_time
        current = self._value_at(now)
        self.cancel_scheduled_values(now)
        self._events.append(AutomationEvent(AutomationKind.SET, now, current))
        if end_time <= now:
            self._events.append(AutomationEvent(AutomationKind.SET, now, float(value)))
        else:
            self._events.append(
                AutomationEvent(AutomationKind.LINEAR_RAMP, end_time, float(value))
            )
        return self

    def cancel_scheduled_values(self, cancel_time: float) -> "AudioParam":
        """
        Remove every event at or after cancel_time.

        A ramp that is already under way holds the value it had reached.
        """
        held = self._value_at(cancel_time)
        kept = [e for e in self._events if e.time < cancel_time]
        if len(kept) != len(self._events) and cancel_time <= self.context.current_time:
            kept.append(AutomationEvent(AutomationKind.SET, cancel_time, held))
        self._events = kept
        return self

    # -- Modulation -------------------------------------------------------

    def _add_input(self, node: "AudioNode") -> None:
        if node not in self._inputs:
            self._inputs.append(node)

    def _remove_input(self, node: "AudioNode") -> None:
        if node in self._inputs:
            self._inputs.remove(node)

    @property
    def has_inputs(self) -> bool:
        return bool(self._inputs)

    # -- Evaluation -------------------------------------------------------

    def values(self, frame: int, frames: int) -> np.ndarray:
        """
        Evaluate the parameter for a block.

        Args:
            frame: Index of the first sample of the block
            frames: Block length

        Returns:
            Float64 array of per-sample values (automation + modulation,
            clamped to the parameter range)
        """
        sample_rate = self.context.sample_rate
        times = (frame + np.arange(frames)) / sample_rate
        out = self._automation(times)

        for node in self._inputs:
            block = node.pull(frame, frames)
            out = out + block.mean(axis=0)

        self._prune(times[-1] if frames else frame / sample_rate)
        return np.clip(out, self.min_value, self.max_value)

    def _automation(self, times: np.ndarray) -> np.ndarray:
        out = np.full(times.shape, self._value, dtype=np.float64)
        # A ramp with nothing before it starts from the base value at t=0.
        prev_time = 0.0
        prev_value = self._value

        for event in self._events:
            if event.kind == AutomationKind.LINEAR_RAMP and event.time > prev_time:
                span = (times >= prev_time) & (times < event.time)
                fraction = (times[span] - prev_time) / (event.time - prev_time)
                out[span] = prev_value + (event.value - prev_value) * fraction
            out[times >= event.time] = event.value
            prev_time, prev_value = event.time, event.value

        return out

    def _value_at(self, time: float) -> float:
        return float(self._automation(np.array([time]))[0])

    def _prune(self, until: float) -> None:
        """Collapse events that lie entirely in the past into the base value."""
        past = [e for e in self._events if e.time <= until]
        if len(past) < 2:
            return
        last = past[-1]
        future = self._events[len(past):]
        self._value = last.value
        self._events = [AutomationEvent(AutomationKind.SET, last.time, last.value), *future]

    def _clamp(self, value: float) -> float:
        return min(max(value, self.min_value), self.max_value)

    @staticmethod
    def _check_time(time: float) -> None:
        if not math.isfinite(time) or time < 0:
            raise ValueError(f"automation time must be finite and >= 0, got {time}")

    def __repr__(self) -> str:
        return f"AudioParam({self.name!r}, value={self._value}, events={len(self._events)})"
