"""Orchestrator — runs the single edit described by a Manifest."""

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from reelcut import ffutil
from reelcut.manifest import EditKind, Manifest, validate_request
from reelcut.models import ClipOutput

logger = logging.getLogger(__name__)


@dataclass
class EngineResult:
    kind: EditKind
    outputs: list[ClipOutput] = field(default_factory=list)
    duration_original: float = 0.0

    @property
    def output_path(self) -> Path | None:
        return self.outputs[0].path if self.outputs else None


def _fmt_seconds(value: float) -> str:
    return f"{value:g}"


def output_names(manifest: Manifest) -> list[str]:
    """Download names for the files an edit produces."""
    stem = Path(manifest.name or manifest.input.name).stem
    edit = manifest.edit
    if edit.kind == EditKind.TRIM:
        return [f"trimmed_{stem}.mp4"]
    if edit.kind == EditKind.SPEED:
        return [f"speed_{_fmt_seconds(edit.speed)}x_{stem}.mp4"]
    if edit.kind == EditKind.SPLIT:
        return [f"{stem}_part1.mp4", f"{stem}_part2.mp4"]
    if edit.kind == EditKind.DELETE_RANGE:
        return [f"{stem}_edited.mp4"]
    return [f"{stem}_extracted_{_fmt_seconds(edit.start)}s-{_fmt_seconds(edit.end)}s.webm"]


def process(
    manifest: Manifest,
    on_progress: Callable[[str, float], None] | None = None,
    max_speed: float = 10.0,
) -> EngineResult:
    """Execute one edit.

    Args:
        manifest: Editing manifest; ``manifest.edit`` is validated here.
        on_progress: Optional callback(stage_name, fraction_complete).
        max_speed: Upper bound for speed edits.

    Raises ValueError for requests that do not fit the clip, and lets
    ``subprocess.CalledProcessError`` from ffmpeg propagate.
    """

    def _progress(stage: str, frac: float) -> None:
        if on_progress:
            on_progress(stage, frac)

    edit = manifest.edit
    validate_request(edit, max_speed=max_speed)
    ffutil.check_ffmpeg()

    _progress("Probing video metadata", 0.0)
    probe_result = ffutil.probe(manifest.input)
    duration = probe_result.duration
    _progress("Probing video metadata", 0.1)

    names = output_names(manifest)
    out = manifest.output
    outputs: list[ClipOutput] = []

    logger.info("Processing %s on %s (%.3fs)", edit.kind.value, manifest.input, duration)

    if edit.kind == EditKind.TRIM:
        _progress("Trimming", 0.2)
        ffutil.trim_clip(manifest.input, edit.start, edit.end - edit.start, out)
        outputs.append(ClipOutput(path=out, filename=names[0]))

    elif edit.kind == EditKind.SPEED:
        _progress(f"Changing speed to {edit.speed:g}x", 0.2)
        ffutil.change_speed(manifest.input, edit.speed, out, has_audio=probe_result.has_audio)
        outputs.append(ClipOutput(path=out, filename=names[0]))

    elif edit.kind == EditKind.SPLIT:
        if edit.at >= duration:
            raise ValueError("Split time must fall inside the clip")
        first = out.with_stem(out.stem + "_part1")
        second = out.with_stem(out.stem + "_part2")
        _progress("Splitting", 0.2)
        ffutil.split_clip(manifest.input, edit.at, first, second)
        outputs.append(ClipOutput(path=first, filename=names[0]))
        outputs.append(ClipOutput(path=second, filename=names[1]))

    elif edit.kind == EditKind.DELETE_RANGE:
        _progress("Removing range", 0.2)
        with tempfile.TemporaryDirectory(prefix="reelcut_parts_", dir=out.parent) as tmpdir:
            ffutil.delete_range(
                manifest.input, edit.start, edit.end, duration, out, Path(tmpdir)
            )
        outputs.append(ClipOutput(path=out, filename=names[0]))

    elif edit.kind == EditKind.EXTRACT_RANGE:
        if out.suffix != ".webm":
            out = out.with_suffix(".webm")
        _progress("Extracting range", 0.2)
        ffutil.extract_range(manifest.input, edit.start, edit.end, out)
        outputs.append(ClipOutput(path=out, filename=names[0], mimetype="video/webm"))

    _progress("Done", 1.0)
    return EngineResult(kind=edit.kind, outputs=outputs, duration_original=duration)
