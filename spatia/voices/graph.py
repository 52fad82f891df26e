"""
Voice Graph - The node graph behind one audible voice.

Topology:
    source(s) -> [coloring filter] -> panner -> gain -> destination

The coloring filter is always created but is only wired in when
filters are enabled; with filters off the sources feed the panner
directly.
"""

from __future__ import annotations

import logging

from spatia.errors import AudioNotReady, UnknownSynthesisKind
from spatia.graph.context import AudioContext
from spatia.graph.nodes import (
    AudioNode,
    AudioScheduledSourceNode,
    BiquadFilterNode,
    GainNode,
    PannerNode,
)
from spatia.spatial.position import RoomPosition
from spatia.synthesis.catalog import SoundDefinition, SynthesisKind
from spatia.synthesis.noise import NoiseGenerator
from spatia.voices.sources import (
    Decoded,
    Procedural,
    StreamSubscription,
    Streamed,
    VoiceSource,
    describe_source,
)


logger = logging.getLogger(__name__)


TONE_FREQUENCY = 528.0
TONE_LEVEL = 0.4
TONE_NOISE_LEVEL = 0.1
OCEAN_LFO_RATE = 0.15
OCEAN_LFO_DEPTH = 300.0

# (filter type, cutoff Hz) of the coloring stage per kind
FILTER_SETTINGS: dict[SynthesisKind, tuple[str, float]] = {
    SynthesisKind.TONE_528: ("lowpass", 2000.0),
    SynthesisKind.OCEAN: ("lowpass", 400.0),
    SynthesisKind.RAIN: ("highpass", 800.0),
    SynthesisKind.WHITE: ("lowpass", 10000.0),
}


class VoiceGraph:
    """
    Audio nodes owned by one voice.

    Built with build(), faded in immediately, faded out with fade_out()
    and released with teardown(). Teardown is idempotent.

    Example:
        graph = VoiceGraph.build(ctx, definition, Procedural(kind), position,
                                 volume=1.0, noise=NoiseGenerator())
        graph.set_position(RoomPosition(2.0, -1.0))
        end = graph.fade_out()
    """

    def __init__(
        self,
        context: AudioContext,
        kind: SynthesisKind,
        peak_volume: float,
        panner: PannerNode,
        gain: GainNode,
        filter_node: BiquadFilterNode,
        sources: list[AudioScheduledSourceNode],
        nodes: list[AudioNode],
        stream: StreamSubscription | None = None,
        fade_time: float = 0.5,
        position_ramp: float = 0.1,
        use_filters: bool = False,
    ):
        self.context = context
        self.kind = kind
        self.peak_volume = peak_volume
        self.panner = panner
        self.gain = gain
        self.filter = filter_node
        self.sources = sources
        self.nodes = nodes
        self.stream = stream
        self.fade_time = fade_time
        self.position_ramp = position_ramp
        self.use_filters = use_filters
        self.volume = 1.0
        self._torn_down = False

    @classmethod
    def build(
        cls,
        context: AudioContext | None,
        definition: SoundDefinition,
        source: VoiceSource,
        position: RoomPosition,
        volume: float = 1.0,
        *,
        noise: NoiseGenerator,
        use_filters: bool = False,
        fade_time: float = 0.5,
        noise_seconds: float = 2.0,
        position_ramp: float = 0.1,
    ) -> "VoiceGraph":
        """
        Build, connect and start the graph for a voice, then fade it in.

        Raises:
            AudioNotReady: If no audio context exists yet.
            UnknownSynthesisKind: If the source has no synthesis path.
        """
        if context is None:
            raise AudioNotReady("activate")

        with context.lock:
            panner = context.create_panner(
                distance_model="exponential",
                ref_distance=1.0,
                max_distance=10000.0,
                rolloff_factor=1.0,
                panning_model="HRTF",
            )
            panner.position_x.value = position.x
            panner.position_y.value = 0.0
            panner.position_z.value = position.z

            gain = context.create_gain(0.0)
            filter_node = context.create_biquad_filter()
            if use_filters:
                filter_node.connect(panner)
            panner.connect(gain)
            gain.connect(context.destination)

            entry: AudioNode = filter_node if use_filters else panner
            graph = cls(
                context,
                kind=definition.kind,
                peak_volume=definition.peak_volume,
                panner=panner,
                gain=gain,
                filter_node=filter_node,
                sources=[],
                nodes=[filter_node, panner, gain],
                fade_time=fade_time,
                position_ramp=position_ramp,
                use_filters=use_filters,
            )

            try:
                if isinstance(source, Streamed):
                    graph._build_stream(source, entry)
                elif isinstance(source, Decoded):
                    graph._build_decoded(source, entry)
                elif isinstance(source, Procedural):
                    graph._build_procedural(source.kind, entry, noise, noise_seconds)
                else:
                    raise UnknownSynthesisKind(type(source).__name__)
            except UnknownSynthesisKind:
                graph.teardown()
                raise

            graph.volume = volume
            graph.fade_in()

        logger.debug(f"Built graph for {definition.id} ({describe_source(source)})")
        return graph

    # -- Construction -----------------------------------------------------

    def _build_stream(self, source: Streamed, entry: AudioNode) -> None:
        reader = source.fanout.subscribe()
        node = self.context.create_media_stream_source(reader, channels=reader.channels)
        node.connect(entry)
        self.nodes.append(node)
        self.stream = reader
        reader.start()

    def _build_decoded(self, source: Decoded, entry: AudioNode) -> None:
        node = self.context.create_buffer_source(source.buffer, loop=True)
        node.connect(entry)
        node.start(self.context.current_time)
        self._track(node)

    def _build_procedural(
        self,
        kind: SynthesisKind,
        entry: AudioNode,
        noise: NoiseGenerator,
        noise_seconds: float,
    ) -> None:
        ctx = self.context
        sample_rate = ctx.sample_rate

        def noise_source(color: str):
            data = noise.generate(color, noise_seconds, sample_rate)
            node = ctx.create_buffer_source(ctx.create_buffer(data), loop=True)
            self._track(node)
            return node

        if kind == SynthesisKind.TONE_528:
            osc = ctx.create_oscillator(TONE_FREQUENCY)
            osc_gain = ctx.create_gain(TONE_LEVEL)
            osc.connect(osc_gain).connect(entry)
            self._track(osc)
            self.nodes.append(osc_gain)

            pink = noise_source("pink")
            pink_gain = ctx.create_gain(TONE_NOISE_LEVEL)
            pink.connect(pink_gain).connect(entry)
            self.nodes.append(pink_gain)

        elif kind == SynthesisKind.OCEAN:
            brown = noise_source("brown")
            lfo = ctx.create_oscillator(OCEAN_LFO_RATE)
            lfo_gain = ctx.create_gain(OCEAN_LFO_DEPTH)
            lfo.connect(lfo_gain).connect(self.filter.frequency)
            self._track(lfo)
            self.nodes.append(lfo_gain)
            brown.connect(entry)

        elif kind == SynthesisKind.RAIN:
            noise_source("pink").connect(entry)

        elif kind == SynthesisKind.WHITE:
            noise_source("white").connect(entry)

        else:
            raise UnknownSynthesisKind(kind)

        filter_type, cutoff = FILTER_SETTINGS[kind]
        self.filter.type = filter_type
        self.filter.frequency.value = cutoff

        for node in self.sources:
            node.start(ctx.current_time)

    def _track(self, node: AudioScheduledSourceNode) -> None:
        self.sources.append(node)
        self.nodes.append(node)

    # -- Control ----------------------------------------------------------

    @property
    def target_gain(self) -> float:
        """Gain the envelope settles at: peak volume times the multiplier."""
        return self.peak_volume * self.volume

    def fade_in(self, from_silence: bool = True) -> float:
        """
        Ramp the gain up to the target over the fade time.

        With from_silence=False the ramp starts from the current gain,
        which is how a voice that is still fading out gets revived.

        Returns:
            Context time at which the fade completes
        """
        with self.context.lock:
            now = self.context.current_time
            if from_silence:
                self.gain.gain.set_value_at_time(0.0, now)
            end = now + self.fade_time
            self.gain.gain.linear_ramp_to_value_at_time(self.target_gain, end)
        return end

    def fade_out(self) -> float:
        """
        Ramp the gain to zero over the fade time.

        Returns:
            Context time at which the gain reaches zero
        """
        with self.context.lock:
            end = self.context.current_time + self.fade_time
            self.gain.gain.linear_ramp_to_value_at_time(0.0, end)
        return end

    def set_position(self, position: RoomPosition) -> None:
        """Glide the panner to a new position over the position ramp."""
        with self.context.lock:
            end = self.context.current_time + self.position_ramp
            self.panner.position_x.linear_ramp_to_value_at_time(position.x, end)
            self.panner.position_z.linear_ramp_to_value_at_time(position.z, end)

    def set_volume(self, volume: float) -> None:
        """Apply a volume multiplier immediately."""
        self.volume = volume
        with self.context.lock:
            self.gain.gain.set_value_at_time(self.target_gain, self.context.current_time)

    @property
    def position(self) -> RoomPosition:
        """Current panner coordinates."""
        with self.context.lock:
            return RoomPosition(self.panner.position_x.value, self.panner.position_z.value)

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    def teardown(self) -> None:
        """Stop every source, stop the stream and disconnect every node."""
        if self._torn_down:
            return
        self._torn_down = True

        with self.context.lock:
            now = self.context.current_time
            for node in self.sources:
                if node.started:
                    node.stop(now)
            if self.stream is not None:
                self.stream.stop()
            for node in self.nodes:
                node.disconnect()
        logger.debug(f"Tore down {self.kind.value} graph")
