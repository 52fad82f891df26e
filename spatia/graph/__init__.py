"""
Spatia - Audio Graph Module

Block-rendering node graph on numpy.

Components:
    AudioContext  - Sample clock, node factory, device output
    AudioParam    - Sample-accurate parameter automation
    AudioBuffer   - Decoded audio in memory
    *Node         - Sources, gain, filter, panner, destination
"""

from spatia.graph.params import (
    AudioParam,
    AutomationEvent,
    AutomationKind,
)

from spatia.graph.nodes import (
    AudioBuffer,
    AudioNode,
    AudioScheduledSourceNode,
    AudioBufferSourceNode,
    OscillatorNode,
    MediaStreamSourceNode,
    GainNode,
    BiquadFilterNode,
    PannerNode,
    AudioDestinationNode,
    StreamReader,
    match_channels,
)

from spatia.graph.context import AudioContext

__all__ = [
    # Params
    "AudioParam",
    "AutomationEvent",
    "AutomationKind",
    # Nodes
    "AudioBuffer",
    "AudioNode",
    "AudioScheduledSourceNode",
    "AudioBufferSourceNode",
    "OscillatorNode",
    "MediaStreamSourceNode",
    "GainNode",
    "BiquadFilterNode",
    "PannerNode",
    "AudioDestinationNode",
    "StreamReader",
    "match_channels",
    # Context
    "AudioContext",
]
