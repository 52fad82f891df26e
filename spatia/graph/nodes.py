"""
Audio Nodes - Pull-based block processors.

Every node renders one block at a time as a (channels, frames) float64
array. A node renders a given block once and caches it, so a node that
feeds several destinations is not processed twice.

Node types:
    AudioBufferSourceNode  - Looping playback of a decoded buffer
    OscillatorNode         - Sine oscillator
    MediaStreamSourceNode  - Blocks pulled from a live stream handle
    GainNode               - Per-sample gain
    BiquadFilterNode       - RBJ low-pass / high-pass
    PannerNode             - Equal-power panning with interaural delay
    AudioDestinationNode   - Stereo sum, hard limited to [-1, 1]
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np
from scipy.signal import lfilter

from spatia.graph.params import AudioParam

if TYPE_CHECKING:
    from spatia.graph.context import AudioContext


logger = logging.getLogger(__name__)


# Interaural time difference model
HEAD_RADIUS = 0.0875  # meters
SPEED_OF_SOUND = 343.0  # m/s


@dataclass
class AudioBuffer:
    """
    Decoded audio held in memory.

    Attributes:
        data: Float32 samples shaped (channels, frames)
        sample_rate: Rate the samples were decoded at
    """

    data: np.ndarray
    sample_rate: int

    def __post_init__(self):
        data = np.asarray(self.data, dtype=np.float32)
        if data.ndim == 1:
            data = data[np.newaxis, :]
        if data.ndim != 2:
            raise ValueError(f"AudioBuffer data must be 1-D or 2-D, got shape {data.shape}")
        self.data = data

    @property
    def channels(self) -> int:
        return self.data.shape[0]

    @property
    def length(self) -> int:
        return self.data.shape[1]

    @property
    def duration(self) -> float:
        return self.length / self.sample_rate


class StreamReader(Protocol):
    """Anything that hands out consecutive blocks of live audio."""

    def read(self, frames: int) -> np.ndarray:
        """Return up to frames samples shaped (channels, n)."""
        ...


def match_channels(block: np.ndarray, channels: int) -> np.ndarray:
    """Up-mix or down-mix a block to the given channel count."""
    current = block.shape[0]
    if current == channels:
        return block
    if current == 1:
        return np.repeat(block, channels, axis=0)
    if channels == 1:
        return block.mean(axis=0, keepdims=True)
    if current > channels:
        return block[:channels]
    pad = np.zeros((channels - current, block.shape[1]), dtype=block.dtype)
    return np.concatenate([block, pad])


class AudioNode:
    """Base class for graph nodes."""

    def __init__(self, context: "AudioContext", channels: int = 1):
        self.context = context
        self.channels = channels
        self._inputs: list[AudioNode] = []
        self._outputs: list[Any] = []
        self._cache_key: tuple[int, int] | None = None
        self._cache: np.ndarray | None = None

    def connect(self, destination: "AudioNode | AudioParam") -> "AudioNode | AudioParam":
        """
        Connect this node's output to a node or to a parameter.

        Returns:
            The destination, so connections can be chained.
        """
        with self.context.lock:
            if isinstance(destination, AudioParam):
                destination._add_input(self)
            elif self not in destination._inputs:
                destination._inputs.append(self)
            if destination not in self._outputs:
                self._outputs.append(destination)
        return destination

    def disconnect(self, destination: "AudioNode | AudioParam | None" = None) -> None:
        """Disconnect from one destination, or from all of them."""
        with self.context.lock:
            targets = list(self._outputs) if destination is None else [destination]
            for target in targets:
                if isinstance(target, AudioParam):
                    target._remove_input(self)
                elif self in target._inputs:
                    target._inputs.remove(self)
                if target in self._outputs:
                    self._outputs.remove(target)

    @property
    def connected(self) -> bool:
        return bool(self._outputs)

    @property
    def inputs(self) -> tuple["AudioNode", ...]:
        return tuple(self._inputs)

    @property
    def outputs(self) -> tuple[Any, ...]:
        return tuple(self._outputs)

    def pull(self, frame: int, frames: int) -> np.ndarray:
        """Render (or fetch the cached) block starting at frame."""
        key = (frame, frames)
        if self._cache_key != key or self._cache is None:
            self._cache = self._process(frame, frames)
            self._cache_key = key
        return self._cache

    def _process(self, frame: int, frames: int) -> np.ndarray:
        return self._mix_inputs(frame, frames)

    def _mix_inputs(
        self,
        frame: int,
        frames: int,
        channels: int | None = None,
    ) -> np.ndarray:
        """Sum every input, mixed to channels (default: widest input)."""
        blocks = [node.pull(frame, frames) for node in self._inputs]
        if channels is None:
            channels = max((b.shape[0] for b in blocks), default=self.channels)
        out = np.zeros((channels, frames), dtype=np.float64)
        for block in blocks:
            out += match_channels(block, channels)
        return out


class AudioScheduledSourceNode(AudioNode):
    """Source that produces output between start() and stop()."""

    def __init__(self, context: "AudioContext", channels: int = 1):
        super().__init__(context, channels)
        self._start_time: float | None = None
        self._stop_time: float | None = None

    def start(self, when: float = 0.0) -> None:
        if self._start_time is not None:
            raise RuntimeError("start() may only be called once")
        self._start_time = max(when, 0.0)

    def stop(self, when: float = 0.0) -> None:
        if self._start_time is None:
            raise RuntimeError("stop() called before start()")
        self._stop_time = max(when, self._start_time)

    @property
    def started(self) -> bool:
        return self._start_time is not None

    @property
    def stopped(self) -> bool:
        return self._stop_time is not None

    def _active_range(self, frame: int, frames: int) -> tuple[int, int]:
        """Sample range of this block during which the source plays."""
        if self._start_time is None:
            return (0, 0)
        sample_rate = self.context.sample_rate
        start = round(self._start_time * sample_rate) - frame
        lo = min(max(start, 0), frames)
        if self._stop_time is None:
            hi = frames
        else:
            stop = round(self._stop_time * sample_rate) - frame
            hi = min(max(stop, 0), frames)
        return (lo, max(lo, hi))


class AudioBufferSourceNode(AudioScheduledSourceNode):
    """Plays an AudioBuffer, optionally looping it."""

    def __init__(
        self,
        context: "AudioContext",
        buffer: AudioBuffer | None = None,
        loop: bool = False,
    ):
        super().__init__(context, channels=buffer.channels if buffer else 1)
        self.buffer = buffer
        self.loop = loop
        self._position = 0

    def _process(self, frame: int, frames: int) -> np.ndarray:
        channels = self.buffer.channels if self.buffer else 1
        out = np.zeros((channels, frames), dtype=np.float64)
        lo, hi = self._active_range(frame, frames)
        if hi <= lo or self.buffer is None or self.buffer.length == 0:
            return out

        length = self.buffer.length
        index = self._position + np.arange(hi - lo)
        if self.loop:
            out[:, lo:hi] = self.buffer.data[:, index % length]
        else:
            valid = index < length
            out[:, lo:hi][:, valid] = self.buffer.data[:, index[valid]]
        self._position += hi - lo
        return out


class OscillatorNode(AudioScheduledSourceNode):
    """Sine oscillator with a modulatable frequency."""

    def __init__(self, context: "AudioContext", frequency: float = 440.0):
        super().__init__(context, channels=1)
        nyquist = context.sample_rate / 2
        self.type = "sine"
        self.frequency = AudioParam(context, frequency, -nyquist, nyquist, name="frequency")
        self._phase = 0.0

    def _process(self, frame: int, frames: int) -> np.ndarray:
        out = np.zeros((1, frames), dtype=np.float64)
        lo, hi = self._active_range(frame, frames)
        frequency = self.frequency.values(frame, frames)
        if hi <= lo:
            return out

        increments = 2 * np.pi * frequency[lo:hi] / self.context.sample_rate
        phases = self._phase + np.cumsum(increments) - increments
        out[0, lo:hi] = np.sin(phases)
        self._phase = float((phases[-1] + increments[-1]) % (2 * np.pi))
        return out


class MediaStreamSourceNode(AudioNode):
    """Feeds blocks read from a live stream into the graph."""

    def __init__(self, context: "AudioContext", stream: StreamReader, channels: int = 2):
        super().__init__(context, channels=channels)
        self.stream = stream

    def _process(self, frame: int, frames: int) -> np.ndarray:
        out = np.zeros((self.channels, frames), dtype=np.float64)
        block = np.asarray(self.stream.read(frames), dtype=np.float64)
        if block.ndim == 1:
            block = block[np.newaxis, :]
        n = min(block.shape[1], frames)
        if n:
            out[:, :n] = match_channels(block[:, :n], self.channels)
        return out


class GainNode(AudioNode):
    """Multiplies its input by a per-sample gain."""

    def __init__(self, context: "AudioContext", gain: float = 1.0):
        super().__init__(context)
        self.gain = AudioParam(context, gain, name="gain")

    def _process(self, frame: int, frames: int) -> np.ndarray:
        block = self._mix_inputs(frame, frames)
        return block * self.gain.values(frame, frames)[np.newaxis, :]


class BiquadFilterNode(AudioNode):
    """
    Second-order low-pass / high-pass filter (RBJ cookbook).

    Coefficients are recomputed at the start of each block from the
    frequency parameter, so the cutoff can be automated or modulated
    at block rate.
    """

    TYPES = ("lowpass", "highpass")

    def __init__(
        self,
        context: "AudioContext",
        type: str = "lowpass",
        frequency: float = 350.0,
        q: float = 1 / math.sqrt(2),
    ):
        super().__init__(context)
        if type not in self.TYPES:
            raise ValueError(f"Unsupported filter type: {type}")
        nyquist = context.sample_rate / 2
        self.type = type
        self.frequency = AudioParam(context, frequency, 0.0, nyquist, name="frequency")
        self.Q = AudioParam(context, q, 1e-4, 1000.0, name="Q")
        self._zi: np.ndarray | None = None

    def coefficients(self, frequency: float, q: float) -> tuple[np.ndarray, np.ndarray]:
        """Normalized (b, a) for a cutoff frequency."""
        sample_rate = self.context.sample_rate
        frequency = min(max(frequency, 10.0), sample_rate * 0.49)
        w0 = 2 * math.pi * frequency / sample_rate
        alpha = math.sin(w0) / (2 * q)
        cos_w0 = math.cos(w0)

        if self.type == "lowpass":
            b = np.array([(1 - cos_w0) / 2, 1 - cos_w0, (1 - cos_w0) / 2])
        else:
            b = np.array([(1 + cos_w0) / 2, -(1 + cos_w0), (1 + cos_w0) / 2])
        a = np.array([1 + alpha, -2 * cos_w0, 1 - alpha])
        return b / a[0], a / a[0]

    def _process(self, frame: int, frames: int) -> np.ndarray:
        block = self._mix_inputs(frame, frames)
        frequency = float(self.frequency.values(frame, frames)[0])
        q = float(self.Q.values(frame, frames)[0])
        b, a = self.coefficients(frequency, q)

        if self._zi is None or self._zi.shape[0] != block.shape[0]:
            self._zi = np.zeros((block.shape[0], 2))
        out, self._zi = lfilter(b, a, block, axis=-1, zi=self._zi)
        return out


class PannerNode(AudioNode):
    """
    Positions a mono source around the listener.

    Stereo output from equal-power panning on the source azimuth, an
    interaural time difference (Woodworth) applied as a fractional delay
    on the far ear, and distance attenuation.

    Distance models:
        exponential: (max(d, ref) / ref) ** -rolloff
        inverse:     ref / (ref + rolloff * (max(d, ref) - ref))
        linear:      1 - rolloff * (min(d, max) - ref) / (max - ref)
    """

    DISTANCE_MODELS = ("exponential", "inverse", "linear")

    def __init__(
        self,
        context: "AudioContext",
        distance_model: str = "exponential",
        ref_distance: float = 1.0,
        max_distance: float = 10000.0,
        rolloff_factor: float = 1.0,
        panning_model: str = "HRTF",
    ):
        super().__init__(context, channels=2)
        if distance_model not in self.DISTANCE_MODELS:
            raise ValueError(f"Unsupported distance model: {distance_model}")
        if ref_distance <= 0 or max_distance <= ref_distance:
            raise ValueError("require 0 < ref_distance < max_distance")
        self.distance_model = distance_model
        self.ref_distance = ref_distance
        self.max_distance = max_distance
        self.rolloff_factor = rolloff_factor
        self.panning_model = panning_model

        self.position_x = AudioParam(context, 0.0, name="positionX")
        self.position_y = AudioParam(context, 0.0, name="positionY")
        self.position_z = AudioParam(context, 0.0, name="positionZ")

        max_delay = HEAD_RADIUS / SPEED_OF_SOUND * (math.pi / 2 + 1)
        self._history_len = int(math.ceil(max_delay * context.sample_rate)) + 2
        self._history = np.zeros(self._history_len)

    def distance_gain(self, distance: np.ndarray | float) -> np.ndarray:
        """Attenuation for a source at the given distance."""
        ref = self.ref_distance
        rolloff = self.rolloff_factor
        d = np.minimum(np.maximum(distance, ref), self.max_distance)
        if self.distance_model == "exponential":
            return np.power(d / ref, -rolloff)
        if self.distance_model == "inverse":
            return ref / (ref + rolloff * (d - ref))
        return 1 - rolloff * (d - ref) / (self.max_distance - ref)

    def _process(self, frame: int, frames: int) -> np.ndarray:
        mono = self._mix_inputs(frame, frames, channels=1)[0]
        listener = self.context.listener

        px = self.position_x.values(frame, frames) - listener.position.x
        py = self.position_y.values(frame, frames) - listener.position.y
        pz = self.position_z.values(frame, frames) - listener.position.z

        right, up, forward = listener.right, listener.up.normalized(), listener.forward.normalized()
        rx = px * right.x + py * right.y + pz * right.z
        ry = px * up.x + py * up.y + pz * up.z
        rz = px * forward.x + py * forward.y + pz * forward.z

        distance = np.sqrt(rx ** 2 + ry ** 2 + rz ** 2)
        gain = self.distance_gain(distance)

        # Fold sources behind the listener onto the front half-plane.
        azimuth = np.arctan2(rx, rz)
        folded = np.where(azimuth > np.pi / 2, np.pi - azimuth, azimuth)
        folded = np.where(folded < -np.pi / 2, -np.pi - folded, folded)
        pan = (folded + np.pi / 2) / np.pi
        left_gain = np.cos(pan * np.pi / 2) * gain
        right_gain = np.sin(pan * np.pi / 2) * gain

        if self.panning_model == "HRTF":
            theta = np.abs(folded)
            itd = HEAD_RADIUS / SPEED_OF_SOUND * (theta + np.sin(theta))
            delay = itd * self.context.sample_rate
            left_delay = np.where(folded > 0, delay, 0.0)
            right_delay = np.where(folded < 0, delay, 0.0)
            left, right_ch = self._delayed(mono, left_delay), self._delayed(mono, right_delay)
        else:
            left = right_ch = mono
        self._history = np.concatenate([self._history, mono])[-self._history_len:]

        return np.stack([left * left_gain, right_ch * right_gain])

    def _delayed(self, mono: np.ndarray, delay: np.ndarray) -> np.ndarray:
        """Read mono delayed by a per-sample fractional number of samples."""
        signal = np.concatenate([self._history, mono])
        position = self._history_len + np.arange(len(mono)) - delay
        base = np.floor(position).astype(np.int64)
        fraction = position - base
        return signal[base] * (1 - fraction) + signal[np.minimum(base + 1, len(signal) - 1)] * fraction


class AudioDestinationNode(AudioNode):
    """Final stereo mix."""

    def __init__(self, context: "AudioContext"):
        super().__init__(context, channels=2)

    def _process(self, frame: int, frames: int) -> np.ndarray:
        return np.clip(self._mix_inputs(frame, frames, channels=2), -1.0, 1.0)
