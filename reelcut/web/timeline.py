"""Timeline-session routes: drive a TimelineController over HTTP.

Each session owns one controller. Calls on a session are serialized with a
per-session lock; committed edits are queued on the session for the client
to pick up and send to the processing routes.
"""

import logging
import threading
import uuid

from flask import Blueprint, current_app, jsonify, request

from reelcut.manifest import EditRequest
from reelcut.models import TimeRange
from reelcut.timeline.controller import OperationResult, Rejection, TimelineController

logger = logging.getLogger(__name__)

timeline_bp = Blueprint("timeline", __name__, url_prefix="/api/timeline")


class TimelineSession:
    def __init__(self, min_width: float, default_trim_length: float) -> None:
        self.lock = threading.Lock()
        self.requests: list[dict] = []
        self.controller = TimelineController(
            processor=self._queue,
            min_width=min_width,
            default_trim_length=default_trim_length,
        )

    def _queue(self, edit: EditRequest) -> None:
        self.requests.append(edit.to_dict())


# Oldest sessions are dropped once this many are open.
MAX_SESSIONS = 256

_sessions: dict[str, TimelineSession] = {}
_sessions_lock = threading.Lock()


def _jsonable(value):
    if isinstance(value, TimeRange):
        return {"start": value.start, "end": value.end}
    return value


def _state(session_id: str, session: TimelineSession) -> dict:
    return {
        "id": session_id,
        "source": session.controller.source,
        "state": session.controller.snapshot().to_dict(),
        "requests": list(session.requests),
    }


def _respond(session_id: str, session: TimelineSession, result: OperationResult):
    body = _state(session_id, session)
    body["value"] = _jsonable(result.value)
    if not result.accepted:
        body["error"] = result.message
        body["reason"] = result.reason.value
        return jsonify(body), 422
    return jsonify(body)


def _invalid(field: str, value, choices: dict) -> OperationResult:
    return OperationResult(
        accepted=False,
        reason=Rejection.INVALID_INPUT,
        message=f"Unknown {field} {value!r}; expected one of {', '.join(choices)}",
    )


def _choose(field: str, choices: dict, default=None):
    def handler(ctrl: TimelineController, body: dict) -> OperationResult:
        value = body.get(field, default)
        op = choices.get(value) if isinstance(value, str) else None
        if op is None:
            return _invalid(field, value, choices)
        return op(ctrl)

    return handler


_split = _choose("at", {
    "current": TimelineController.split_at_current_time,
    "midpoint": TimelineController.split_at_midpoint,
}, default="current")

_mode = _choose("mode", {
    "delete": TimelineController.request_delete_mode,
    "extract": TimelineController.request_extract_mode,
    "none": TimelineController.cancel_selection,
})

_commit = _choose("kind", {
    "delete": TimelineController.commit_delete_range,
    "extract": TimelineController.commit_extract_range,
    "trim": TimelineController.request_trim,
})

_jump = _choose("edge", {
    "start": TimelineController.jump_to_trim_start,
    "end": TimelineController.jump_to_trim_end,
})


_ACTIONS = {
    "duration": lambda c, b: c.on_duration_reported(b.get("duration")),
    "click": lambda c, b: c.on_timeline_click(b.get("time")),
    "seek": lambda c, b: c.seek(b.get("time")),
    "skip": lambda c, b: c.skip(b.get("delta")),
    "trim": lambda c, b: c.set_trim(b.get("start"), b.get("end")),
    "trim/adjust": lambda c, b: c.adjust_trim(b.get("edge"), b.get("delta")),
    "trim/jump": _jump,
    "mode": _mode,
    "cancel": lambda c, b: c.cancel_selection(),
    "commit": _commit,
    "split": _split,
}


@timeline_bp.route("", methods=["POST"])
def create_session():
    body = request.get_json(silent=True) or {}
    settings = current_app.config["SETTINGS"]
    session_id = uuid.uuid4().hex[:12]
    session = TimelineSession(settings.min_range_width, settings.default_trim_length)
    session.controller.load_asset(body.get("duration"), source=body.get("source"))
    with _sessions_lock:
        while len(_sessions) >= MAX_SESSIONS:
            oldest = next(iter(_sessions))
            del _sessions[oldest]
            logger.info("Dropped timeline session %s (limit %d)", oldest, MAX_SESSIONS)
        _sessions[session_id] = session
    return jsonify(_state(session_id, session)), 201


def _get(session_id: str) -> TimelineSession | None:
    with _sessions_lock:
        return _sessions.get(session_id)


@timeline_bp.route("/<session_id>", methods=["GET"])
def get_session(session_id: str):
    session = _get(session_id)
    if session is None:
        return jsonify({"error": "Session not found"}), 404
    with session.lock:
        return jsonify(_state(session_id, session))


@timeline_bp.route("/<session_id>", methods=["DELETE"])
def delete_session(session_id: str):
    with _sessions_lock:
        session = _sessions.pop(session_id, None)
    if session is None:
        return jsonify({"error": "Session not found"}), 404
    return "", 204


@timeline_bp.route("/<session_id>/requests", methods=["DELETE"])
def take_requests(session_id: str):
    """Return the queued edit requests and clear the queue."""
    session = _get(session_id)
    if session is None:
        return jsonify({"error": "Session not found"}), 404
    with session.lock:
        taken, session.requests = session.requests, []
    return jsonify({"requests": taken})


@timeline_bp.route("/<session_id>/<path:action>", methods=["POST"])
def session_action(session_id: str, action: str):
    session = _get(session_id)
    if session is None:
        return jsonify({"error": "Session not found"}), 404
    handler = _ACTIONS.get(action)
    if handler is None:
        return jsonify({"error": f"Unknown action: {action}"}), 404

    body = request.get_json(silent=True) or {}
    with session.lock:
        result = handler(session.controller, body)
        return _respond(session_id, session, result)
