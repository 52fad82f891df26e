"""
Spatia Session - The engine behind a room.

A session owns the sound catalog, the voices, the frame scheduler, the
movement engine and the audio context. Callers drive it through the
command methods, each of which returns a CommandResult instead of
raising for expected failures.

Example:
    session = SpatiaSession(Config())
    session.start_audio(live=True)

    result = session.activate("ocean", position=(2.0, -1.0))
    voice_id = result.voice_id
    session.set_movement(voice_id, "circle", speed=0.5, distance=4)

    document = session.export_scene()
    document.save("room.json")
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

import numpy as np

from spatia.config import Config
from spatia.errors import (
    AssetMissing,
    AudioNotReady,
    DecodeFailure,
    SceneFormatError,
    SpatiaError,
    StreamingDisabled,
    UnknownSynthesisKind,
    VoiceNotActive,
    VoiceNotFound,
)
from spatia.graph.context import AudioContext
from spatia.monitoring.logging import StructuredLogger, get_logger
from spatia.movement.engine import MovementEngine
from spatia.movement.profile import MovementProfile
from spatia.movement.scheduler import FrameScheduler, MonotonicClock, VirtualClock
from spatia.scene.codec import ActivationRequest, ImportIssue, SceneCodec
from spatia.scene.document import SceneDocument
from spatia.spatial.position import RoomPosition
from spatia.synthesis.catalog import (
    CUSTOM_COLOR,
    CUSTOM_ICON,
    SOUND_CATALOG,
    STREAM_COLOR,
    STREAM_ICON,
    SoundDefinition,
    SynthesisKind,
)
from spatia.synthesis.noise import NoiseGenerator
from spatia.voices.graph import VoiceGraph
from spatia.voices.sources import Decoded, Procedural, StreamHandle, Streamed
from spatia.voices.voice import Voice, VoiceState, clamp_volume


logger = logging.getLogger(__name__)


class CommandStatus(str, Enum):
    """Outcome of a session command."""

    OK = "ok"
    REJECTED = "rejected"
    IGNORED = "ignored"
    PARTIAL = "partial"


@dataclass
class CommandResult:
    """
    Result of a session command.

    Attributes:
        status: Outcome
        voice_ids: Voices created or addressed by the command
        error: Reason for a rejected or ignored command
        issues: Per-item problems of a partial command
    """

    status: CommandStatus
    voice_ids: list[str] = field(default_factory=list)
    error: Exception | None = None
    issues: list[ImportIssue] = field(default_factory=list)

    @property
    def is_ok(self) -> bool:
        return self.status == CommandStatus.OK

    @property
    def voice_id(self) -> str | None:
        return self.voice_ids[0] if self.voice_ids else None

    @classmethod
    def ok(cls, *voice_ids: str) -> "CommandResult":
        return cls(CommandStatus.OK, voice_ids=list(voice_ids))

    @classmethod
    def rejected(cls, error: Exception) -> "CommandResult":
        return cls(CommandStatus.REJECTED, error=error)

    @classmethod
    def ignored(cls, error: Exception) -> "CommandResult":
        return cls(CommandStatus.IGNORED, error=error)

    @classmethod
    def partial(cls, issues: list[ImportIssue], voice_ids: Iterable[str] = ()) -> "CommandResult":
        return cls(CommandStatus.PARTIAL, voice_ids=list(voice_ids), issues=issues)


PositionListener = Callable[[str, RoomPosition], None]


class SpatiaSession:
    """
    Owns every voice in one room.

    Dock templates come from the catalog (plus uploads and streams) and
    spawn instances when activated. Each activation builds a VoiceGraph;
    each deactivation fades it out and schedules its teardown on the
    frame scheduler. A teardown that fires after the voice was
    reactivated does nothing.

    Args:
        config: Engine configuration.
        scheduler: Frame scheduler (default: wall clock at config.frame_rate).
        noise: Noise generator for procedural voices.
        logger: Structured logger for lifecycle events.
        catalog: Built-in sound definitions.
        on_position: Called with (voice_id, position) whenever movement
            moves a voice.
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        scheduler: FrameScheduler | None = None,
        noise: NoiseGenerator | None = None,
        logger: StructuredLogger | None = None,
        catalog: Iterable[SoundDefinition] = SOUND_CATALOG,
        on_position: PositionListener | None = None,
    ):
        self.config = config or Config()
        self.scheduler = scheduler or FrameScheduler(MonotonicClock(), self.config.frame_rate)
        self.noise = noise or NoiseGenerator()
        self.events = (logger or get_logger()).bind(component="session")
        self.codec = SceneCodec()
        self.on_position = on_position

        self.context: AudioContext | None = None
        self.movement = MovementEngine(self.scheduler, self._on_movement)

        self._voices: dict[str, Voice] = {}
        self._lock = threading.RLock()
        self._ids = itertools.count(1)

        for definition in catalog:
            self._register(Voice(
                id=definition.id,
                definition=definition,
                source=Procedural(definition.kind),
                is_instance=False,
            ))

    # -- State ------------------------------------------------------------

    @property
    def audio_ready(self) -> bool:
        return self.context is not None

    @property
    def voices(self) -> list[Voice]:
        with self._lock:
            return list(self._voices.values())

    @property
    def templates(self) -> list[Voice]:
        return [v for v in self.voices if not v.is_instance]

    @property
    def instances(self) -> list[Voice]:
        return [v for v in self.voices if v.is_instance]

    @property
    def active_voices(self) -> list[Voice]:
        return [v for v in self.voices if v.state == VoiceState.ACTIVE]

    def get_voice(self, voice_id: str) -> Voice:
        """
        Look up a voice.

        Raises:
            VoiceNotFound: If no voice has this id.
        """
        with self._lock:
            try:
                return self._voices[voice_id]
            except KeyError:
                raise VoiceNotFound(voice_id) from None

    # -- Audio ------------------------------------------------------------

    def start_audio(self, live: bool = False) -> CommandResult:
        """
        Create the audio context. Nothing can sound before this.

        Args:
            live: Also open the output device and start the frame
                scheduler thread.
        """
        with self._lock:
            if self.context is None:
                self.context = AudioContext(self.config.sample_rate, self.config.block_size)
                logger.info(f"Audio started at {self.config.sample_rate} Hz")
            if live:
                self.context.start_output(self.config.output_device)
                self.scheduler.start()
        return CommandResult.ok()

    def render(self, seconds: float) -> np.ndarray:
        """
        Render audio offline, advancing the frame clock in step.

        Audio is rendered one frame interval at a time; after each chunk
        a VirtualClock is moved to the matching time and the scheduler
        ticks, so movement and teardowns happen where they would live.

        Returns:
            Float32 array shaped (frames, 2)

        Raises:
            AudioNotReady: If start_audio() was not called.
        """
        context = self.context
        if context is None:
            raise AudioNotReady("render")

        sample_rate = context.sample_rate
        total = int(round(seconds * sample_rate))
        chunk = max(1, int(sample_rate / self.scheduler.frame_rate))
        clock = self.scheduler.clock
        origin = clock.now()

        out = np.zeros((total, 2), dtype=np.float32)
        done = 0
        while done < total:
            n = min(chunk, total - done)
            out[done:done + n] = context.render(n)
            done += n
            if isinstance(clock, VirtualClock):
                clock.set(origin + done / sample_rate)
            self.scheduler.tick()
        return out

    def close(self) -> None:
        """Tear down every voice, stop the scheduler and close the audio context."""
        with self._lock:
            self.movement.stop_all()
            for voice in self.voices:
                if voice.is_audible:
                    self._release(voice)
            self.scheduler.cancel_all()
        self.scheduler.stop()
        if self.context is not None:
            self.context.close()
            self.context = None

    def __enter__(self) -> "SpatiaSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -- Voice commands ---------------------------------------------------

    def activate(
        self,
        voice_id: str,
        kind: SynthesisKind | str | None = None,
        position: RoomPosition | tuple[float, float] = (0.0, 0.0),
    ) -> CommandResult:
        """
        Place a voice in the room.

        A template id spawns a new instance. An instance id (re)activates
        that instance; activating an active voice changes nothing. An
        unknown id creates an instance of the catalog kind under that id.
        """
        if self.context is None:
            error = AudioNotReady("activate")
            self.events.command_failed("activate", error, voice_id=voice_id)
            return CommandResult.rejected(error)

        position = RoomPosition.coerce(position)
        created: Voice | None = None

        with self._lock:
            try:
                voice = self._voices.get(voice_id)
                if voice is None:
                    if kind is None:
                        raise VoiceNotFound(voice_id)
                    template = self._template_for_kind(kind)
                    voice = created = self._spawn(template, voice_id=voice_id)
                elif not voice.is_instance:
                    voice = created = self._spawn(voice)
                self._activate_voice(voice, position)
            except (UnknownSynthesisKind, VoiceNotFound) as e:
                if created is not None:
                    self._voices.pop(created.id, None)
                logger.warning(f"activate({voice_id}) ignored: {e.message}")
                self.events.command_failed("activate", e, voice_id=voice_id)
                return CommandResult.ignored(e)

        return CommandResult.ok(voice.id)

    def deactivate(self, voice_id: str) -> CommandResult:
        """
        Return a voice to the dock: stop its movement, fade it out and
        schedule its teardown. A voice that is not active is left alone.
        """
        with self._lock:
            voice = self._voices.get(voice_id)
            if voice is None or voice.state != VoiceState.ACTIVE:
                return CommandResult.ok()

            self.movement.stop(voice.id)
            voice.position = voice.live_position
            voice.fade_end = voice.graph.fade_out()
            voice.state = VoiceState.FADING_OUT
            self._schedule_teardown(voice, self.config.fade_time)
        return CommandResult.ok(voice_id)

    def update_position(self, voice_id: str, x: float, z: float) -> CommandResult:
        """Move an active voice (e.g. while it is dragged)."""
        with self._lock:
            try:
                voice = self._active(voice_id)
            except (VoiceNotFound, VoiceNotActive) as e:
                return CommandResult.ignored(e)
            voice.position = RoomPosition(float(x), float(z))
            voice.graph.set_position(voice.position)
        return CommandResult.ok(voice_id)

    def set_movement(
        self,
        voice_id: str,
        kind: str,
        speed: float = 1.0,
        distance: float = 3.0,
    ) -> CommandResult:
        """Change how a voice moves. Restarts its movement if it is active."""
        try:
            profile = MovementProfile(kind, speed=speed, distance=distance)
        except ValueError as e:
            return CommandResult.rejected(e)

        with self._lock:
            voice = self._voices.get(voice_id)
            if voice is None:
                return CommandResult.ignored(VoiceNotFound(voice_id))
            voice.movement = profile
            if voice.state == VoiceState.ACTIVE:
                self.movement.update(voice.id, profile)
        return CommandResult.ok(voice_id)

    def set_volume(self, voice_id: str, multiplier: float) -> CommandResult:
        """Set a voice's volume multiplier, clamped to [0, 2]."""
        with self._lock:
            voice = self._voices.get(voice_id)
            if voice is None:
                return CommandResult.ignored(VoiceNotFound(voice_id))
            voice.volume = clamp_volume(multiplier)
            if voice.state == VoiceState.ACTIVE:
                voice.graph.set_volume(voice.volume)
        return CommandResult.ok(voice_id)

    def pause_movement(self, voice_id: str) -> CommandResult:
        """Suspend a voice's movement, e.g. while the user drags it."""
        with self._lock:
            if voice_id not in self._voices:
                return CommandResult.ignored(VoiceNotFound(voice_id))
            self.movement.stop(voice_id)
        return CommandResult.ok(voice_id)

    def resume_movement(self, voice_id: str) -> CommandResult:
        """Restart a paused voice's movement from a fresh time origin."""
        with self._lock:
            try:
                voice = self._active(voice_id)
            except (VoiceNotFound, VoiceNotActive) as e:
                return CommandResult.ignored(e)
            self.movement.start(voice.id, voice.movement)
        return CommandResult.ok(voice_id)

    # -- Dock -------------------------------------------------------------

    def add_custom_sound(self, data: bytes, file_name: str) -> CommandResult:
        """Decode an uploaded audio file and add it to the dock."""
        if self.context is None:
            return CommandResult.rejected(AudioNotReady("add_custom_sound"))

        try:
            buffer = self.context.decode_audio_data(data, file_name)
        except DecodeFailure as e:
            self.events.decode_failure(e, file_name=file_name)
            return CommandResult.rejected(e)

        definition = SoundDefinition(
            id=self._new_id("custom"),
            kind=SynthesisKind.CUSTOM,
            icon=CUSTOM_ICON,
            color=CUSTOM_COLOR,
            label=Path(file_name).stem,
        )
        with self._lock:
            self._register(Voice(
                id=definition.id,
                definition=definition,
                source=Decoded(buffer),
                is_instance=False,
                file_name=file_name,
                file_data=bytes(data),
            ))
        logger.info(f"Added custom sound {definition.id} from {file_name} ({buffer.duration:.1f}s)")
        return CommandResult.ok(definition.id)

    def add_custom_sounds(self, files: Iterable[tuple[str, bytes]]) -> CommandResult:
        """
        Add several uploads. A file that fails to decode is reported and
        the rest are still added.
        """
        added: list[str] = []
        issues: list[ImportIssue] = []
        for index, (file_name, data) in enumerate(files):
            result = self.add_custom_sound(data, file_name)
            if result.is_ok:
                added.extend(result.voice_ids)
            elif isinstance(result.error, AudioNotReady):
                return result
            else:
                issues.append(ImportIssue(index=index, error=result.error))

        if issues:
            return CommandResult.partial(issues, added)
        return CommandResult.ok(*added)

    def add_custom_file(self, path: str | Path) -> CommandResult:
        path = Path(path)
        return self.add_custom_sound(path.read_bytes(), path.name)

    def add_stream(self, handle: StreamHandle, label: str = "Stream") -> CommandResult:
        """Add a live stream to the dock."""
        if not self.config.enable_streaming:
            return CommandResult.rejected(StreamingDisabled(label))

        definition = SoundDefinition(
            id=self._new_id("stream"),
            kind=SynthesisKind.STREAM,
            icon=STREAM_ICON,
            color=STREAM_COLOR,
            label=label,
        )
        with self._lock:
            self._register(Voice(
                id=definition.id,
                definition=definition,
                source=Streamed(handle),
                is_instance=False,
            ))
        logger.info(f"Added stream {definition.id} ({label})")
        return CommandResult.ok(definition.id)

    # -- Scenes -----------------------------------------------------------

    def export_scene(self) -> SceneDocument:
        """Snapshot every active instance."""
        with self._lock:
            document = self.codec.export(self.voices)
        self.events.scene_exported(len(document))
        return document

    def import_scene(self, document: SceneDocument | dict | str) -> CommandResult:
        """
        Replace the room with a scene.

        Every audible voice is returned to the dock first. Entries that
        cannot be restored are reported as issues; the rest are placed.
        """
        if self.context is None:
            return CommandResult.rejected(AudioNotReady("import_scene"))

        try:
            if isinstance(document, str):
                document = SceneDocument.from_json(document)
            elif isinstance(document, dict):
                document = SceneDocument.from_dict(document)
        except SceneFormatError as e:
            self.events.command_failed("import_scene", e)
            return CommandResult.rejected(e)

        plan = self.codec.import_document(document)
        issues = list(plan.issues)
        activated: list[str] = []

        with self._lock:
            for voice in self.voices:
                if voice.is_audible:
                    self._release(voice)

            for issue in plan.issues:
                self._report_issue(issue)

            for request in plan.requests:
                try:
                    voice = self._instantiate(request)
                    self._activate_voice(voice, request.position)
                except (AssetMissing, DecodeFailure, UnknownSynthesisKind) as e:
                    issue = ImportIssue(index=request.index, error=e)
                    issues.append(issue)
                    self._report_issue(issue)
                    continue
                activated.append(voice.id)

        issues.sort(key=lambda issue: issue.index)
        self.events.scene_imported(len(activated), len(issues))
        if issues:
            return CommandResult.partial(issues, activated)
        return CommandResult.ok(*activated)

    def load_scene_file(self, path: str | Path) -> CommandResult:
        try:
            document = SceneDocument.load(path)
        except SceneFormatError as e:
            return CommandResult.rejected(e)
        return self.import_scene(document)

    # -- Internals --------------------------------------------------------

    def _register(self, voice: Voice) -> Voice:
        self._voices[voice.id] = voice
        return voice

    def _new_id(self, prefix: str) -> str:
        while True:
            candidate = f"{prefix}-{next(self._ids)}"
            if candidate not in self._voices:
                return candidate

    def _active(self, voice_id: str) -> Voice:
        voice = self.get_voice(voice_id)
        if voice.state != VoiceState.ACTIVE:
            raise VoiceNotActive(voice_id, voice.state.value)
        return voice

    def _template_for_kind(self, kind: SynthesisKind | str) -> Voice:
        kind = SynthesisKind.parse(kind)
        for voice in self._voices.values():
            if not voice.is_instance and voice.kind == kind and isinstance(voice.source, Procedural):
                return voice
        if not kind.is_procedural:
            raise UnknownSynthesisKind(kind, f"Kind '{kind.value}' needs an uploaded or streamed source")
        definition = SoundDefinition(id=kind.value, kind=kind)
        return Voice(id=definition.id, definition=definition, source=Procedural(kind), is_instance=False)

    def _spawn(self, template: Voice, voice_id: str | None = None) -> Voice:
        """Create an instance sharing the template's definition and source."""
        return self._register(Voice(
            id=voice_id or self._new_id(template.definition.id),
            definition=template.definition,
            source=template.source,
            is_instance=True,
            label=template.label,
            movement=template.movement,
            volume=template.volume,
            file_name=template.file_name,
            file_data=template.file_data,
        ))

    def _instantiate(self, request: ActivationRequest) -> Voice:
        """Create the instance a scene entry describes."""
        if request.kind == SynthesisKind.CUSTOM:
            name = request.file_name or request.label
            try:
                buffer = self.context.decode_audio_data(request.file_data, name)
            except DecodeFailure as e:
                e.index = request.index
                e.details["index"] = request.index
                raise
            definition = SoundDefinition(
                id=self._new_id("custom"),
                kind=SynthesisKind.CUSTOM,
                icon=CUSTOM_ICON,
                color=CUSTOM_COLOR,
                label=request.label or Path(name).stem,
            )
            template = Voice(
                id=definition.id,
                definition=definition,
                source=Decoded(buffer),
                is_instance=False,
                file_name=request.file_name,
                file_data=request.file_data,
            )
        elif request.kind == SynthesisKind.STREAM:
            template = self._stream_template(request)
        else:
            template = self._template_for_kind(request.kind)

        voice = self._spawn(template)
        voice.movement = request.movement
        voice.volume = clamp_volume(request.volume)
        if request.label:
            voice.label = request.label
        return voice

    def _stream_template(self, request: ActivationRequest) -> Voice:
        for voice in self._voices.values():
            if not voice.is_instance and voice.kind == SynthesisKind.STREAM and voice.label == request.label:
                return voice
        raise AssetMissing(request.label or "stream", index=request.index)

    def _activate_voice(self, voice: Voice, position: RoomPosition) -> None:
        """
        Make a voice audible at position.

        Raises:
            AudioNotReady: If the audio context does not exist.
            UnknownSynthesisKind: If the voice's source cannot be built.
        """
        if voice.state == VoiceState.ACTIVE:
            return

        if voice.state == VoiceState.FADING_OUT and voice.graph is not None:
            # Revive the fading graph instead of building a second one.
            if voice.teardown_timer is not None:
                voice.teardown_timer.cancel()
                voice.teardown_timer = None
            voice.fade_end = None
            voice.generation += 1
            voice.state = VoiceState.ACTIVE
            voice.position = position
            voice.graph.volume = voice.volume
            voice.graph.fade_in(from_silence=False)
            voice.graph.set_position(position)
        else:
            voice.graph = VoiceGraph.build(
                self.context,
                voice.definition,
                voice.source,
                position,
                voice.volume,
                noise=self.noise,
                use_filters=self.config.use_filters,
                fade_time=self.config.fade_time,
                noise_seconds=self.config.noise_buffer_seconds,
                position_ramp=self.config.position_ramp,
            )
            voice.generation += 1
            voice.state = VoiceState.ACTIVE
            voice.position = position

        self.movement.start(voice.id, voice.movement)
        self.events.voice_activated(
            voice.id,
            kind=voice.kind.value,
            x=position.x,
            z=position.z,
            generation=voice.generation,
        )

    def _schedule_teardown(self, voice: Voice, delay: float) -> None:
        generation = voice.generation
        voice.teardown_timer = self.scheduler.call_later(
            delay,
            lambda: self._finish_teardown(voice.id, generation),
            name=f"teardown:{voice.id}",
        )

    def _fade_remaining(self, voice: Voice) -> float:
        """Seconds of fade left on the audio clock."""
        if self.context is None or voice.fade_end is None:
            return 0.0
        # Half a sample of slack absorbs float rounding of the clock.
        slack = 0.5 / self.context.sample_rate
        return max(voice.fade_end - self.context.current_time - slack, 0.0)

    def _finish_teardown(self, voice_id: str, generation: int) -> None:
        with self._lock:
            voice = self._voices.get(voice_id)
            if voice is None or voice.generation != generation:
                return
            if voice.state != VoiceState.FADING_OUT:
                return
            remaining = self._fade_remaining(voice)
            if remaining > 0:
                # The audio clock lags the frame clock; wait for silence.
                logger.debug(f"Teardown of {voice.id} deferred {remaining:.3f}s")
                self._schedule_teardown(voice, remaining + self.scheduler.frame_interval)
                return
            self._release(voice)

    def _release(self, voice: Voice) -> None:
        """Tear down a voice's graph now and return it to the dock."""
        self.movement.stop(voice.id)
        if voice.teardown_timer is not None:
            voice.teardown_timer.cancel()
            voice.teardown_timer = None
        if voice.graph is not None:
            voice.position = voice.live_position
            voice.graph.teardown()
            voice.graph = None
        voice.fade_end = None
        voice.state = VoiceState.DOCKED
        if voice.is_instance:
            self._voices.pop(voice.id, None)
        self.events.voice_released(voice.id, generation=voice.generation)

    def _report_issue(self, issue: ImportIssue) -> None:
        error = issue.error
        if isinstance(error, AssetMissing):
            self.events.asset_missing(error.file_name, index=issue.index)
        elif isinstance(error, DecodeFailure):
            self.events.decode_failure(error, index=issue.index)
        else:
            self.events.command_failed("import_scene", error, index=issue.index)

    def _on_movement(self, voice_id: str, position: RoomPosition) -> None:
        with self._lock:
            voice = self._voices.get(voice_id)
            if voice is None or voice.state != VoiceState.ACTIVE or voice.graph is None:
                return
            voice.position = position
            voice.graph.set_position(position)
        if self.on_position is not None:
            self.on_position(voice_id, position)
