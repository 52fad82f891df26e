"""
Audio Context - Sample clock, node factory and output.

The context renders its destination block by block. Offline callers
use render(); live playback opens a sounddevice output stream whose
callback renders into the device buffer.
"""

from __future__ import annotations

import io
import logging
import threading
from typing import Any

import numpy as np
import soundfile as sf
from scipy.signal import resample_poly

from spatia.errors import DecodeFailure
from spatia.graph.nodes import (
    AudioBuffer,
    AudioBufferSourceNode,
    AudioDestinationNode,
    BiquadFilterNode,
    GainNode,
    MediaStreamSourceNode,
    OscillatorNode,
    PannerNode,
    StreamReader,
)
from spatia.spatial.position import ListenerPosition


logger = logging.getLogger(__name__)


class AudioContext:
    """
    Owns the audio clock and the node graph.

    current_time advances only as frames are rendered. Graph mutation
    and rendering share one re-entrant lock.

    Example:
        ctx = AudioContext(sample_rate=48000)
        osc = ctx.create_oscillator(528.0)
        osc.connect(ctx.destination)
        osc.start()
        stereo = ctx.render(48000)  # one second, shape (48000, 2)
    """

    def __init__(self, sample_rate: int = 48000, block_size: int = 128):
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        if block_size < 1:
            raise ValueError(f"block_size must be >= 1, got {block_size}")

        self.sample_rate = sample_rate
        self.block_size = block_size
        self.lock = threading.RLock()
        self.listener = ListenerPosition()
        self.destination = AudioDestinationNode(self)

        self._frame = 0
        self._stream: Any = None
        self._closed = False

    @property
    def current_time(self) -> float:
        """Seconds of audio rendered so far."""
        return self._frame / self.sample_rate

    @property
    def frame(self) -> int:
        return self._frame

    @property
    def state(self) -> str:
        if self._closed:
            return "closed"
        return "running" if self._stream is not None else "suspended"

    # -- Factories --------------------------------------------------------

    def create_buffer(self, data: np.ndarray, sample_rate: int | None = None) -> AudioBuffer:
        return AudioBuffer(data, sample_rate or self.sample_rate)

    def create_buffer_source(
        self,
        buffer: AudioBuffer | None = None,
        loop: bool = False,
    ) -> AudioBufferSourceNode:
        return AudioBufferSourceNode(self, buffer, loop=loop)

    def create_oscillator(self, frequency: float = 440.0) -> OscillatorNode:
        return OscillatorNode(self, frequency)

    def create_gain(self, gain: float = 1.0) -> GainNode:
        return GainNode(self, gain)

    def create_biquad_filter(self, type: str = "lowpass", frequency: float = 350.0) -> BiquadFilterNode:
        return BiquadFilterNode(self, type=type, frequency=frequency)

    def create_panner(self, **kwargs: Any) -> PannerNode:
        return PannerNode(self, **kwargs)

    def create_media_stream_source(self, stream: StreamReader, channels: int = 2) -> MediaStreamSourceNode:
        return MediaStreamSourceNode(self, stream, channels=channels)

    # -- Rendering --------------------------------------------------------

    def render(self, frames: int) -> np.ndarray:
        """
        Render the next frames of output.

        Returns:
            Float32 array shaped (frames, 2)
        """
        if frames < 0:
            raise ValueError(f"frames must be >= 0, got {frames}")

        out = np.zeros((frames, 2), dtype=np.float32)
        with self.lock:
            written = 0
            while written < frames:
                n = min(self.block_size, frames - written)
                block = self.destination.pull(self._frame, n)
                out[written:written + n] = block.T
                self._frame += n
                written += n
        return out

    def start_output(self, device: int | str | None = None) -> None:
        """Start live playback on an output device."""
        if self._closed:
            raise RuntimeError("AudioContext is closed")
        if self._stream is not None:
            return

        import sounddevice as sd

        def callback(outdata, frames, time_info, status):
            if status:
                logger.warning(f"Output stream status: {status}")
            outdata[:] = self.render(frames)

        self._stream = sd.OutputStream(
            samplerate=self.sample_rate,
            channels=2,
            dtype="float32",
            blocksize=self.block_size,
            device=device,
            callback=callback,
        )
        self._stream.start()
        logger.info(f"Audio output started at {self.sample_rate} Hz")

    def stop_output(self) -> None:
        if self._stream is None:
            return
        self._stream.stop()
        self._stream.close()
        self._stream = None
        logger.info("Audio output stopped")

    def close(self) -> None:
        """Stop output and disconnect the destination."""
        if self._closed:
            return
        self.stop_output()
        with self.lock:
            for node in list(self.destination.inputs):
                node.disconnect(self.destination)
        self._closed = True

    # -- Decoding ---------------------------------------------------------

    def decode_audio_data(self, data: bytes, file_name: str = "<bytes>") -> AudioBuffer:
        """
        Decode an encoded audio file held in memory.

        The result is resampled to the context rate.

        Raises:
            DecodeFailure: If the bytes are not a readable audio file.
        """
        try:
            samples, rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
        except (RuntimeError, ValueError, TypeError) as e:
            raise DecodeFailure(file_name, reason=str(e)) from e

        if samples.shape[0] == 0:
            raise DecodeFailure(file_name, reason="no audio frames")

        samples = samples.T
        if rate != self.sample_rate:
            samples = resample_poly(samples, self.sample_rate, rate, axis=1).astype(np.float32)
            logger.debug(f"Resampled {file_name} from {rate} Hz to {self.sample_rate} Hz")

        return AudioBuffer(samples, self.sample_rate)

    def __enter__(self) -> "AudioContext":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
