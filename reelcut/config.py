"""Runtime settings: ffmpeg binaries, editing defaults, upload limits."""

import json
import os
import platform
from dataclasses import dataclass, fields
from pathlib import Path

# Where ffmpeg usually ends up on Windows when it is not on PATH.
WINDOWS_FFMPEG_CANDIDATES = [
    Path.home() / "AppData" / "Local" / "Microsoft" / "WinGet" / "Packages"
    / "Gyan.FFmpeg_Microsoft.Winget.Source_8wekyb3d8bbwe" / "ffmpeg-7.1.1-full_build" / "bin",
    Path("C:/Program Files/FFmpeg/bin"),
    Path("C:/FFmpeg/bin"),
    Path("C:/ffmpeg/bin"),
    Path("C:/ProgramData/chocolatey/bin"),
]


@dataclass
class Settings:
    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"
    default_trim_length: float = 30.0
    min_range_width: float = 0.1
    max_speed: float = 10.0
    max_upload_bytes: int = 2 * 1024 * 1024 * 1024  # 2 GB
    work_dir: Path | None = None


def _find_windows_binary(name: str) -> str | None:
    for directory in WINDOWS_FFMPEG_CANDIDATES:
        candidate = directory / f"{name}.exe"
        if candidate.exists():
            return str(candidate)
    return None


def load_settings(path: str | Path | None = None, environ: dict | None = None) -> Settings:
    """Build Settings from an optional JSON file, then ``REELCUT_*`` env vars.

    Environment variables win over the file.
    """
    env = os.environ if environ is None else environ
    data: dict = {}
    if path is not None:
        data = json.loads(Path(path).read_text())
        known = {f.name for f in fields(Settings)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

    if env.get("REELCUT_FFMPEG"):
        data["ffmpeg"] = env["REELCUT_FFMPEG"]
    if env.get("REELCUT_FFPROBE"):
        data["ffprobe"] = env["REELCUT_FFPROBE"]
    if env.get("REELCUT_WORK_DIR"):
        data["work_dir"] = env["REELCUT_WORK_DIR"]
    if env.get("REELCUT_MAX_UPLOAD_BYTES"):
        data["max_upload_bytes"] = int(env["REELCUT_MAX_UPLOAD_BYTES"])

    if data.get("work_dir") is not None:
        data["work_dir"] = Path(data["work_dir"])

    settings = Settings(**data)

    if platform.system() == "Windows":
        if "ffmpeg" not in data:
            settings.ffmpeg = _find_windows_binary("ffmpeg") or settings.ffmpeg
        if "ffprobe" not in data:
            settings.ffprobe = _find_windows_binary("ffprobe") or settings.ffprobe

    return settings
