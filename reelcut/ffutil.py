"""FFmpeg/ffprobe subprocess helpers."""

import json
import logging
import re
import shlex
import shutil
import subprocess
from pathlib import Path

from reelcut.config import Settings
from reelcut.models import ProbeResult

logger = logging.getLogger(__name__)

_binaries = {"ffmpeg": "ffmpeg", "ffprobe": "ffprobe"}

# Browser-friendly H.264/AAC mp4, shared by every mp4-producing edit.
MP4_OUTPUT_ARGS = [
    "-c:v", "libx264",
    "-c:a", "aac",
    "-movflags", "faststart",
    "-pix_fmt", "yuv420p",
    "-f", "mp4",
]

WEBM_OUTPUT_ARGS = [
    "-c:v", "libvpx-vp9",
    "-c:a", "libopus",
    "-crf", "30",
    "-b:v", "1M",
    "-b:a", "128k",
    "-f", "webm",
]

# atempo only accepts factors in [0.5, 2.0] per stage.
ATEMPO_MIN = 0.5
ATEMPO_MAX = 2.0


class FFmpegNotFoundError(RuntimeError):
    pass


def configure(settings: Settings) -> None:
    """Point the helpers at the binaries named in ``settings``."""
    _binaries["ffmpeg"] = settings.ffmpeg
    _binaries["ffprobe"] = settings.ffprobe
    logger.debug("Using ffmpeg=%s ffprobe=%s", settings.ffmpeg, settings.ffprobe)


def ffmpeg_bin() -> str:
    return _binaries["ffmpeg"]


def ffprobe_bin() -> str:
    return _binaries["ffprobe"]


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe cannot be found."""
    for cmd in (ffmpeg_bin(), ffprobe_bin()):
        if shutil.which(cmd) is None:
            raise FFmpegNotFoundError(f"{cmd} not found on PATH")


def _run(cmd: list[str]) -> subprocess.CompletedProcess:
    logger.debug("Running: %s", shlex.join(cmd))
    return subprocess.run(cmd, capture_output=True, check=True)


def parse_duration_tag(value: str | None) -> float | None:
    """Parse a Matroska-style ``HH:MM:SS.fff`` DURATION tag."""
    if not value:
        return None
    parts = value.strip().split(":")
    if len(parts) != 3:
        return None
    try:
        hours, minutes, seconds = (float(p) for p in parts)
    except ValueError:
        return None
    total = hours * 3600 + minutes * 60 + seconds
    return total if total > 0 else None


def parse_timemark(stderr: str) -> float | None:
    """Return the last ``time=HH:MM:SS.xx`` progress mark in ffmpeg output."""
    marks = re.findall(r"time=(\d+:\d+:\d+(?:\.\d+)?)", stderr)
    if not marks:
        return None
    return parse_duration_tag(marks[-1])


def _positive(value) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def duration_from_metadata(data: dict) -> float | None:
    """Pick a duration out of ffprobe JSON.

    Recorder-produced WebM files often lack a container duration, so fall
    back to the first stream's duration and then to DURATION tags.
    """
    fmt = data.get("format", {})
    streams = data.get("streams", [])
    first = streams[0] if streams else {}

    duration = _positive(fmt.get("duration")) or _positive(first.get("duration"))
    if duration is None:
        tag = first.get("tags", {}).get("DURATION") or fmt.get("tags", {}).get("DURATION")
        duration = parse_duration_tag(tag)
    return duration


def duration_from_decode(input_path: Path) -> float:
    """Decode the whole file to the null muxer and read the final timemark."""
    cmd = [ffmpeg_bin(), "-i", str(input_path), "-f", "null", "-"]
    logger.debug("Running: %s", shlex.join(cmd))
    result = subprocess.run(cmd, capture_output=True, text=True)
    duration = parse_timemark(result.stderr or "")
    if duration is None:
        raise RuntimeError(f"Could not determine duration of {input_path}")
    return duration


def probe(input_path: Path) -> ProbeResult:
    """Extract media metadata via ffprobe."""
    cmd = [
        ffprobe_bin(),
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    data = json.loads(result.stdout)

    video_stream = next(
        (s for s in data["streams"] if s["codec_type"] == "video"), None
    )
    audio_stream = next(
        (s for s in data["streams"] if s["codec_type"] == "audio"), None
    )

    if video_stream is None:
        raise ValueError(f"No video stream found in {input_path}")

    duration = duration_from_metadata(data)
    if duration is None:
        logger.info("No duration in ffprobe metadata for %s; decoding to measure", input_path)
        duration = duration_from_decode(input_path)

    fps = None
    if "/" in video_stream.get("r_frame_rate", ""):
        num, den = video_stream["r_frame_rate"].split("/")
        if int(den):
            fps = int(num) / int(den)

    return ProbeResult(
        duration=duration,
        width=video_stream.get("width"),
        height=video_stream.get("height"),
        fps=fps,
        audio_sample_rate=int(audio_stream["sample_rate"]) if audio_stream else None,
        codec_video=video_stream.get("codec_name"),
        codec_audio=audio_stream.get("codec_name") if audio_stream else None,
    )


def trim_clip(input_path: Path, start: float, duration: float, output_path: Path) -> Path:
    """Cut ``duration`` seconds from ``start`` as a widely playable mp4."""
    cmd = [
        ffmpeg_bin(), "-y",
        "-ss", str(start),
        "-i", str(input_path),
        "-t", str(duration),
        # libx264 needs even dimensions
        "-vf", "scale=trunc(iw/2)*2:trunc(ih/2)*2",
        "-profile:v", "baseline",
        "-level", "3.0",
        *MP4_OUTPUT_ARGS,
        str(output_path),
    ]
    _run(cmd)
    return output_path


def atempo_chain(speed: float) -> str:
    """Build an atempo filter chain for any positive speed factor."""
    if speed <= 0:
        raise ValueError("Speed must be positive")
    stages: list[float] = []
    remaining = speed
    while remaining > ATEMPO_MAX:
        stages.append(ATEMPO_MAX)
        remaining /= ATEMPO_MAX
    while remaining < ATEMPO_MIN:
        stages.append(ATEMPO_MIN)
        remaining /= ATEMPO_MIN
    stages.append(remaining)
    return ",".join(f"atempo={s:.6g}" for s in stages)


def change_speed(
    input_path: Path, speed: float, output_path: Path, has_audio: bool = True
) -> Path:
    """Re-time video (and audio, if present) by ``speed``."""
    if speed <= 0:
        raise ValueError("Speed must be positive")
    cmd = [ffmpeg_bin(), "-y", "-i", str(input_path)]
    if speed != 1:
        cmd += ["-vf", f"setpts={1 / speed:.6g}*PTS"]
        if has_audio:
            cmd += ["-af", atempo_chain(speed)]
    cmd += [*MP4_OUTPUT_ARGS, str(output_path)]
    _run(cmd)
    return output_path


def cut_segment(
    input_path: Path,
    output_path: Path,
    start: float = 0.0,
    duration: float | None = None,
) -> Path:
    """Re-encode ``[start, start + duration)`` (or to EOF) as mp4."""
    cmd = [ffmpeg_bin(), "-y", "-ss", str(start), "-i", str(input_path)]
    if duration is not None:
        cmd += ["-t", str(duration)]
    cmd += [*MP4_OUTPUT_ARGS, str(output_path)]
    _run(cmd)
    return output_path


def split_clip(
    input_path: Path, at: float, first_path: Path, second_path: Path
) -> tuple[Path, Path]:
    """Split into ``[0, at)`` and ``[at, EOF]``."""
    if at <= 0:
        raise ValueError("Split time must be greater than zero")
    cut_segment(input_path, first_path, start=0.0, duration=at)
    cut_segment(input_path, second_path, start=at)
    return first_path, second_path


def _concat_entry(path: Path) -> str:
    # concat demuxer quoting: close quote, escaped quote, reopen
    posix = path.as_posix().replace("'", "'\\''")
    return f"file '{posix}'"


def concat_files(parts: list[Path], list_path: Path, output_path: Path) -> Path:
    """Join already-encoded parts with the concat demuxer."""
    if not parts:
        raise ValueError("concat_files called with empty part list")
    list_path.write_text("\n".join(_concat_entry(p) for p in parts) + "\n")
    cmd = [
        ffmpeg_bin(), "-y",
        "-f", "concat",
        "-safe", "0",
        "-i", str(list_path),
        *MP4_OUTPUT_ARGS,
        str(output_path),
    ]
    _run(cmd)
    return output_path


def copy_streams(input_path: Path, output_path: Path) -> Path:
    cmd = [ffmpeg_bin(), "-y", "-i", str(input_path), "-c", "copy", str(output_path)]
    _run(cmd)
    return output_path


def delete_range(
    input_path: Path,
    start: float,
    end: float,
    duration: float,
    output_path: Path,
    work_dir: Path,
) -> Path:
    """Remove ``[start, end)`` and stitch the remaining parts together.

    Intermediate parts are written to ``work_dir``; the caller owns cleanup.
    """
    if start >= end:
        raise ValueError("Delete start must be less than delete end")
    if start >= duration:
        raise ValueError("Delete range starts after the end of the video")
    if start <= 0 and end >= duration:
        raise ValueError("Cannot delete entire video")

    parts: list[Path] = []
    if start > 0:
        parts.append(cut_segment(input_path, work_dir / "part1.mp4", start=0.0, duration=start))
    if end < duration:
        parts.append(cut_segment(input_path, work_dir / "part2.mp4", start=end))

    logger.info(
        "Deleting %.3f-%.3f of %.3fs clip, keeping %d part(s)", start, end, duration, len(parts)
    )
    if len(parts) == 2:
        return concat_files(parts, work_dir / "concat.txt", output_path)
    return copy_streams(parts[0], output_path)


def extract_range(
    input_path: Path, start: float, end: float, output_path: Path
) -> Path:
    """Export ``[start, end)`` as a standalone WebM clip."""
    if start >= end:
        raise ValueError("Invalid time range")
    cmd = [
        ffmpeg_bin(), "-y",
        "-ss", str(start),
        "-i", str(input_path),
        "-t", str(end - start),
        *WEBM_OUTPUT_ARGS,
        str(output_path),
    ]
    _run(cmd)
    return output_path
