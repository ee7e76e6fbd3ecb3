"""Clip-processing routes: upload a clip, get the edited clip back."""

import base64
import logging
import math
import subprocess
import tempfile
from pathlib import Path
from typing import Callable

from flask import Blueprint, Response, current_app, jsonify, request

from reelcut.engine import EngineResult, process
from reelcut.ffutil import FFmpegNotFoundError
from reelcut.manifest import EditKind, EditRequest, Manifest

logger = logging.getLogger(__name__)

bp = Blueprint("video", __name__, url_prefix="/api/video")

_MIME_SUFFIXES = {"webm": ".webm", "mp4": ".mp4", "quicktime": ".mov", "mov": ".mov"}


def _form_float(name: str) -> float | None:
    raw = request.form.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _upload_suffix(upload) -> str:
    suffix = Path(upload.filename or "").suffix
    if suffix:
        return suffix.lower()
    mimetype = upload.mimetype or ""
    for key, ext in _MIME_SUFFIXES.items():
        if key in mimetype:
            return ext
    return ".mp4"


def _video_response(data: bytes, filename: str, mimetype: str, attachment: bool) -> Response:
    disposition = "attachment" if attachment else "inline"
    return Response(
        data,
        status=200,
        mimetype=mimetype,
        headers={
            "Content-Length": str(len(data)),
            "Content-Disposition": f'{disposition}; filename="{filename}"',
            "Cache-Control": "no-cache",
        },
    )


def _run_edit(edit: EditRequest, respond: Callable[[EngineResult], Response], failure: str):
    """Save the uploaded ``video``, run ``edit`` on it and build the response.

    Everything is written to a per-request temporary directory that is removed
    before returning, whatever the outcome.
    """
    upload = request.files.get("video")
    if upload is None or not upload.filename:
        return jsonify({"error": "No file provided"}), 400

    settings = current_app.config["SETTINGS"]
    with tempfile.TemporaryDirectory(prefix="edit_", dir=current_app.config["WORK_DIR"]) as tmpdir:
        job_dir = Path(tmpdir)
        input_path = job_dir / f"input{_upload_suffix(upload)}"
        upload.save(input_path)
        logger.info("Received %s (%d bytes) for %s", upload.filename, input_path.stat().st_size, edit.kind.value)

        manifest = Manifest(
            input=input_path,
            output=job_dir / "output.mp4",
            edit=edit,
            name=upload.filename,
        )
        try:
            result = process(manifest, max_speed=settings.max_speed)
            for output in result.outputs:
                if not output.path.exists() or output.path.stat().st_size == 0:
                    raise RuntimeError(f"Output file {output.filename} is empty")
            return respond(result)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except subprocess.CalledProcessError as e:
            logger.exception("%s failed", edit.kind.value)
            stderr = e.stderr if isinstance(e.stderr, str) else (e.stderr or b"").decode(errors="replace")
            details = f"ffmpeg failed: {stderr[-500:]}" if stderr else str(e)
            return jsonify({"error": failure, "details": details}), 500
        except (FFmpegNotFoundError, RuntimeError, OSError) as e:
            logger.exception("%s failed", edit.kind.value)
            return jsonify({"error": failure, "details": str(e)}), 500


@bp.route("/trim", methods=["POST"])
def trim():
    start = _form_float("startTime")
    duration = _form_float("duration")
    if start is None or duration is None:
        return jsonify({"error": "Start time and duration are required"}), 400

    def respond(result: EngineResult) -> Response:
        out = result.outputs[0]
        return _video_response(out.path.read_bytes(), out.filename, out.mimetype, attachment=False)

    edit = EditRequest(kind=EditKind.TRIM, start=start, end=start + duration)
    return _run_edit(edit, respond, "Failed to process video")


@bp.route("/speed", methods=["POST"])
def speed():
    value = _form_float("speed")
    if value is None:
        return jsonify({"error": "Invalid speed multiplier"}), 400

    def respond(result: EngineResult) -> Response:
        out = result.outputs[0]
        return _video_response(out.path.read_bytes(), out.filename, out.mimetype, attachment=True)

    return _run_edit(EditRequest(kind=EditKind.SPEED, speed=value), respond, "Failed to process video")


@bp.route("/split", methods=["POST"])
def split():
    at = _form_float("splitTime")
    if at is None:
        return jsonify({"error": "Video file and split time required"}), 400

    def respond(result: EngineResult) -> Response:
        parts = {}
        for key, out in zip(("part1", "part2"), result.outputs):
            data = out.path.read_bytes()
            parts[key] = {
                "data": base64.b64encode(data).decode("ascii"),
                "filename": out.filename,
                "size": len(data),
            }
        return jsonify(parts)

    return _run_edit(EditRequest(kind=EditKind.SPLIT, at=at), respond, "Failed to split video")


@bp.route("/delete-range", methods=["POST"])
def delete_range():
    start = _form_float("deleteStart")
    end = _form_float("deleteEnd")
    if start is None or end is None:
        return jsonify({"error": "Video file, delete start, and delete end required"}), 400

    def respond(result: EngineResult) -> Response:
        out = result.outputs[0]
        return _video_response(out.path.read_bytes(), out.filename, out.mimetype, attachment=False)

    edit = EditRequest(kind=EditKind.DELETE_RANGE, start=start, end=end)
    return _run_edit(edit, respond, "Failed to delete range from video")


@bp.route("/extract-range", methods=["POST"])
def extract_range():
    start = _form_float("extractStart")
    end = _form_float("extractEnd")
    if start is None or end is None or start >= end:
        return jsonify({"error": "Invalid time range"}), 400

    def respond(result: EngineResult) -> Response:
        out = result.outputs[0]
        data = out.path.read_bytes()
        return jsonify({
            "success": True,
            "video": {
                "name": out.filename,
                "data": base64.b64encode(data).decode("ascii"),
                "duration": end - start,
                "size": len(data),
            },
        })

    edit = EditRequest(kind=EditKind.EXTRACT_RANGE, start=start, end=end)
    return _run_edit(edit, respond, "Failed to extract range from video")
