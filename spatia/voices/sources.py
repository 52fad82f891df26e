"""
Voice Sources - Where a voice's signal comes from.

A voice is backed by exactly one of:
    Procedural  - Synthesized from oscillators and noise
    Decoded     - A decoded audio buffer, looped
    Streamed    - A live stream handle
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Protocol, Union, runtime_checkable

import numpy as np
import soundfile as sf

from spatia.graph.nodes import AudioBuffer
from spatia.synthesis.catalog import SynthesisKind


logger = logging.getLogger(__name__)


@runtime_checkable
class StreamHandle(Protocol):
    """Live audio provided from outside the engine."""

    channels: int

    def read(self, frames: int) -> np.ndarray:
        """Return up to frames samples shaped (channels, n)."""
        ...

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


@dataclass(frozen=True)
class Procedural:
    kind: SynthesisKind


@dataclass(frozen=True)
class Decoded:
    buffer: AudioBuffer


@dataclass(frozen=True)
class Streamed:
    handle: StreamHandle
    fanout: "StreamFanout" = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "fanout", StreamFanout(self.handle))


VoiceSource = Union[Procedural, Decoded, Streamed]


class ArrayStream:
    """
    Stream handle over an in-memory array.

    Reads return silence until start() and after stop(). With loop=True
    the array repeats; otherwise the stream ends when it runs out.
    """

    def __init__(self, data: np.ndarray, loop: bool = True):
        data = np.asarray(data, dtype=np.float32)
        if data.ndim == 1:
            data = data[np.newaxis, :]
        self.data = data
        self.channels = data.shape[0]
        self.loop = loop
        self.started = False
        self.stopped = False
        self._position = 0
        self._lock = threading.Lock()

    def start(self) -> None:
        self.started = True
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True

    def read(self, frames: int) -> np.ndarray:
        with self._lock:
            length = self.data.shape[1]
            if not self.started or self.stopped or length == 0:
                return np.zeros((self.channels, 0), dtype=np.float32)
            if self.loop:
                index = (self._position + np.arange(frames)) % length
            else:
                index = np.arange(self._position, min(self._position + frames, length))
            self._position += len(index)
            return self.data[:, index]


class SoundFileStream:
    """
    Stream handle that reads an audio file incrementally with soundfile.

    Stands in for a network or device stream: the file is read block by
    block rather than decoded up front.
    """

    def __init__(self, path: str, loop: bool = True):
        self.path = path
        self.loop = loop
        self._file: sf.SoundFile | None = None
        self._lock = threading.Lock()
        with sf.SoundFile(path) as f:
            self.channels = f.channels
            self.sample_rate = f.samplerate

    def start(self) -> None:
        with self._lock:
            if self._file is None:
                self._file = sf.SoundFile(self.path)
                logger.debug(f"Opened stream {self.path}")

    def stop(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None
                logger.debug(f"Closed stream {self.path}")

    @property
    def active(self) -> bool:
        return self._file is not None

    def read(self, frames: int) -> np.ndarray:
        with self._lock:
            if self._file is None:
                return np.zeros((self.channels, 0), dtype=np.float32)
            block = self._file.read(frames, dtype="float32", always_2d=True)
            if self.loop and len(block) < frames and self._file.frames > 0:
                parts = [block]
                remaining = frames - len(block)
                while remaining > 0:
                    self._file.seek(0)
                    more = self._file.read(remaining, dtype="float32", always_2d=True)
                    parts.append(more)
                    remaining -= len(more)
                block = np.concatenate(parts)
            return block.T


class StreamFanout:
    """
    Shares one stream handle between several graphs.

    Each graph reads through its own subscription and sees every block.
    Blocks pulled from the handle are queued for every open subscription,
    so a subscription never consumes audio meant for another. The handle
    starts with the first open subscription and stops when the last one
    closes.
    """

    def __init__(self, handle: StreamHandle):
        self.handle = handle
        self.channels = handle.channels
        self._subscribers: list[StreamSubscription] = []
        self._lock = threading.RLock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> "StreamSubscription":
        """Create a reader with its own position in the stream."""
        return StreamSubscription(self)

    def _open(self, subscription: "StreamSubscription") -> None:
        with self._lock:
            if subscription in self._subscribers:
                return
            first = not self._subscribers
            self._subscribers.append(subscription)
            if first:
                self.handle.start()
                logger.debug("Stream started")

    def _close(self, subscription: "StreamSubscription") -> None:
        with self._lock:
            if subscription not in self._subscribers:
                return
            self._subscribers.remove(subscription)
            if not self._subscribers:
                self.handle.stop()
                logger.debug("Stream stopped")

    def _read(self, subscription: "StreamSubscription", frames: int) -> np.ndarray:
        with self._lock:
            if subscription not in self._subscribers:
                return np.zeros((self.channels, 0), dtype=np.float32)

            while subscription.pending.shape[1] < frames:
                block = np.asarray(
                    self.handle.read(frames - subscription.pending.shape[1]),
                    dtype=np.float32,
                )
                if block.ndim == 1:
                    block = block[np.newaxis, :]
                if block.shape[1] == 0:
                    break
                for subscriber in self._subscribers:
                    subscriber.pending = np.concatenate([subscriber.pending, block], axis=1)

            out = subscription.pending[:, :frames]
            subscription.pending = subscription.pending[:, frames:]
            return out


class StreamSubscription:
    """One graph's reader on a shared stream."""

    def __init__(self, fanout: StreamFanout):
        self.fanout = fanout
        self.channels = fanout.channels
        self.pending = np.zeros((fanout.channels, 0), dtype=np.float32)

    def start(self) -> None:
        self.fanout._open(self)

    def stop(self) -> None:
        self.fanout._close(self)
        self.pending = np.zeros((self.channels, 0), dtype=np.float32)

    def read(self, frames: int) -> np.ndarray:
        return self.fanout._read(self, frames)


def describe_source(source: VoiceSource) -> str:
    """Short label for logs."""
    if isinstance(source, Procedural):
        return f"procedural:{source.kind.value}"
    if isinstance(source, Decoded):
        return f"decoded:{source.buffer.duration:.2f}s"
    return "streamed"
