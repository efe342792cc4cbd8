"""Clip reconstruction from .an pose snapshots and .ani clip sections.

Each usable section of a clip description becomes one ReconstructedClip:
the section's frame range is resampled into piecewise-linear curves,
root bone translation on three position curves and every bone's rotation
on three continuous Euler angle curves.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from an_file import AnimationFile
from ani_file import ClipDescription, ClipSection
from aop_errors import (
    DecodeError,
    FrameRangeError,
    UnparsableEventFrameError,
    UnresolvedSectionError,
)
from convention import (
    flip_position,
    flip_rotation,
    map_quaternion,
    map_vector3,
    quaternion_to_euler,
)
from curves import Curve, linear_curve, unwrap_euler
from rig import bone_name, bone_path

KEY_START = "start_time"
KEY_END = "end_time"
KEY_LOOP = "loop"
KEY_EVENT = "event"

TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ClipEvent:
    time: float
    label: str


@dataclass(frozen=True)
class BoneCurves:
    """Rotation curves of one bone, Euler degrees in target convention."""
    bone: int
    path: str
    rotation_x: Curve
    rotation_y: Curve
    rotation_z: Curve

    @property
    def samples(self) -> List[Tuple[float, float, float, float]]:
        """Keys as (time, x, y, z)."""
        return [
            (kx.time, kx.value, ky.value, kz.value)
            for kx, ky, kz in zip(self.rotation_x.keys, self.rotation_y.keys, self.rotation_z.keys)
        ]


@dataclass(frozen=True)
class ReconstructedClip:
    name: str
    frame_rate: float
    start_frame: int
    end_frame: int
    bone_curves: Tuple[BoneCurves, ...]
    # X, Y and Z translation curves of bone 0.
    root_position: Tuple[Curve, Curve, Curve]
    loop: bool = False
    events: Tuple[ClipEvent, ...] = ()

    @property
    def loop_time(self) -> bool:
        return self.loop

    @property
    def loop_blend(self) -> bool:
        return self.loop

    @property
    def frame_duration(self) -> float:
        return 1.0 / self.frame_rate

    @property
    def stop_time(self) -> float:
        return (self.end_frame - self.start_frame) * self.frame_duration

    @property
    def root_position_samples(self) -> List[Tuple[float, float, float, float]]:
        x, y, z = self.root_position
        return [(kx.time, kx.value, ky.value, kz.value) for kx, ky, kz in zip(x.keys, y.keys, z.keys)]


@dataclass
class ReconstructionResult:
    clips: List[ReconstructedClip] = field(default_factory=list)
    # Non-fatal problems: skipped sections and dropped events.
    diagnostics: List[DecodeError] = field(default_factory=list)

    def get(self, name: str) -> Optional[ReconstructedClip]:
        return next((c for c in self.clips if c.name == name), None)


def parse_bool(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in TRUE_VALUES


def parse_event(value: str) -> Optional[Tuple[str, int]]:
    """Parse '"label", frame'; None when the frame number is unreadable."""
    parts = [p.strip() for p in value.split(",") if p.strip()]
    if len(parts) < 2:
        return None
    try:
        frame = int(parts[1])
    except ValueError:
        return None
    return parts[0].strip('"'), frame


class AnimationCurveReconstructor:
    """Builds clips from a decoded animation and its clip description."""

    def __init__(self, clip_name_prefix: str = ""):
        """Initialize reconstructor.

        Args:
            clip_name_prefix: Prepended to every section name to form the
                clip name
        """
        self.clip_name_prefix = clip_name_prefix

    def reconstruct(self, animation: AnimationFile, description: ClipDescription) -> ReconstructionResult:
        """Reconstruct every usable section.

        Sections without a name are ignored. Sections missing their frame
        range, or with a range outside the animation, are skipped and
        reported in the result's diagnostics.
        """
        result = ReconstructionResult()
        for section in description.sections:
            if not section.name:
                continue
            try:
                clip = self.reconstruct_section(animation, section, result.diagnostics)
            except UnresolvedSectionError as e:
                result.diagnostics.append(e)
                continue
            result.clips.append(clip)
        return result

    def reconstruct_section(
        self,
        animation: AnimationFile,
        section: ClipSection,
        diagnostics: Optional[List[DecodeError]] = None,
    ) -> ReconstructedClip:
        """Reconstruct one section.

        Raises:
            UnresolvedSectionError: If start_time/end_time are absent or
                not integers
            FrameRangeError: If the range is empty or outside the animation
        """
        if diagnostics is None:
            diagnostics = []
        start, end = self._frame_range(section, animation.header.frame_count)

        fps = animation.header.frames_per_second
        frame_duration = 1.0 / fps
        frames = range(start, end + 1)
        times = [i * frame_duration for i in range(len(frames))]

        skeleton = animation.skeleton
        bone_curves = []
        for bone in range(skeleton.bone_count):
            euler = [
                quaternion_to_euler(flip_rotation(map_quaternion(animation.frames.rotation(bone, f))))
                for f in frames
            ]
            x, y, z = zip(*unwrap_euler(euler))
            bone_curves.append(BoneCurves(
                bone=bone,
                path=bone_name(bone) if bone == 0 else bone_path(skeleton, bone),
                rotation_x=linear_curve(times, x),
                rotation_y=linear_curve(times, y),
                rotation_z=linear_curve(times, z),
            ))

        positions = [flip_position(map_vector3(animation.frames.root_positions[f])) for f in frames]
        root_position = tuple(linear_curve(times, [p[axis] for p in positions]) for axis in range(3))

        return ReconstructedClip(
            name=self.clip_name_prefix + section.name,
            frame_rate=fps,
            start_frame=start,
            end_frame=end,
            bone_curves=tuple(bone_curves),
            root_position=root_position,
            loop=parse_bool(section.first(KEY_LOOP)),
            events=tuple(self._events(section, start, frame_duration, diagnostics)),
        )

    def _frame_range(self, section: ClipSection, frame_count: int) -> Tuple[int, int]:
        start_value = section.first(KEY_START)
        end_value = section.first(KEY_END)
        if start_value is None or end_value is None:
            raise UnresolvedSectionError(section.name)
        try:
            start, end = int(start_value), int(end_value)
        except ValueError:
            raise UnresolvedSectionError(
                section.name,
                f"Section [{section.name}] has a non-integer frame range: "
                f"{start_value!r}..{end_value!r}",
            ) from None
        if start < 0 or end < start or end >= frame_count:
            raise FrameRangeError(section.name, start, end, frame_count)
        return start, end

    def _events(
        self,
        section: ClipSection,
        start: int,
        frame_duration: float,
        diagnostics: List[DecodeError],
    ) -> Sequence[ClipEvent]:
        events = []
        for value in section.values(KEY_EVENT):
            parsed = parse_event(value)
            if parsed is None:
                diagnostics.append(UnparsableEventFrameError(section.name, value))
                continue
            label, frame = parsed
            events.append(ClipEvent(time=(frame - start) * frame_duration, label=label))
        return events


def reconstruct_clips(
    animation: AnimationFile,
    description: ClipDescription,
    clip_name_prefix: str = "",
) -> ReconstructionResult:
    return AnimationCurveReconstructor(clip_name_prefix).reconstruct(animation, description)
