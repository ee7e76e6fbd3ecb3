"""Tests for the timeline controller."""

import math

import pytest

from reelcut.manifest import EditKind
from reelcut.models import TimeRange
from reelcut.timeline.controller import Rejection, TimelineController


@pytest.fixture
def emitted():
    return []


@pytest.fixture
def ctrl(emitted):
    c = TimelineController(processor=emitted.append)
    c.load_asset(source="clip.webm")
    c.on_duration_reported(20.0)
    return c


def _ready_delete(c, a=2.0, b=4.0):
    c.request_delete_mode()
    c.on_timeline_click(a)
    c.on_timeline_click(b)


class TestLoadAsset:
    def test_unknown_duration(self):
        c = TimelineController()
        c.load_asset()
        assert c.clock.duration == 0.0
        assert (c.trim.start, c.trim.end) == (0.0, 0.0)
        assert c.mode == "idle"

    def test_duration_hint(self):
        c = TimelineController()
        c.load_asset(duration_hint=45.0)
        assert c.trim == TimeRange(0.0, 30.0)
        c.load_asset(duration_hint=12.0)
        assert c.trim == TimeRange(0.0, 12.0)

    def test_resets_everything(self, ctrl):
        ctrl.seek(5.0)
        _ready_delete(ctrl)
        ctrl.load_asset(source="other.webm")
        assert ctrl.clock.current_time == 0.0
        assert ctrl.delete_range is None
        assert ctrl.mode == "idle"
        assert ctrl.source == "other.webm"


class TestDurationReported:
    def test_scenario_first_report_sets_trim(self):
        c = TimelineController()
        c.load_asset()
        c.on_duration_reported(12.0)
        assert c.trim.start == 0
        assert c.trim.end == 12.0

    def test_long_clip_defaults_to_thirty_seconds(self):
        c = TimelineController()
        c.load_asset()
        c.on_duration_reported(90.0)
        assert c.trim == TimeRange(0.0, 30.0)

    @pytest.mark.parametrize("d", [3.0, 10.0, 15.0])
    def test_shorter_duration_clamps_trim_end(self, ctrl, d):
        ctrl.set_trim(2.0, 18.0)
        ctrl.on_duration_reported(d)
        assert ctrl.trim.end == min(d, 30)
        assert ctrl.trim.start <= ctrl.trim.end

    def test_trim_start_past_new_end_resets_start(self, ctrl):
        ctrl.set_trim(12.0, 18.0)
        ctrl.on_duration_reported(5.0)
        assert ctrl.trim == TimeRange(0.0, 5.0)

    def test_invalid_report_rejected(self, ctrl):
        result = ctrl.on_duration_reported(math.nan)
        assert not result
        assert result.reason == Rejection.INVALID_INPUT
        assert ctrl.clock.duration == 20.0

    def test_scenario_stale_selection_discarded(self, ctrl):
        _ready_delete(ctrl, 2.0, 4.0)
        assert ctrl.mode == "delete_ready"
        ctrl.on_duration_reported(3.0)
        assert ctrl.mode == "idle"
        assert ctrl.delete_range is None


class TestTimelineClick:
    def test_scenario_idle_click_seeks(self):
        c = TimelineController()
        c.load_asset()
        c.on_duration_reported(20.0)
        c.on_timeline_click(10.0)
        assert c.clock.current_time == 10

    def test_click_without_duration(self):
        c = TimelineController()
        c.load_asset()
        result = c.on_timeline_click(1.0)
        assert result.reason == Rejection.NO_DURATION

    def test_nan_click(self, ctrl):
        result = ctrl.on_timeline_click(math.nan)
        assert result.reason == Rejection.INVALID_INPUT
        assert ctrl.clock.current_time == 0.0

    def test_armed_click_does_not_seek(self, ctrl):
        ctrl.request_extract_mode()
        ctrl.on_timeline_click(7.0)
        assert ctrl.clock.current_time == 0.0
        assert ctrl.selection_start == 7.0

    def test_armed_click_is_clamped(self, ctrl):
        ctrl.request_delete_mode()
        ctrl.on_timeline_click(15.0)
        ctrl.on_timeline_click(99.0)
        assert ctrl.delete_range == TimeRange(15.0, 20.0)


class TestSelection:
    def test_scenario_reversed_clicks_normalized(self, ctrl):
        _ready_delete(ctrl, 4.0, 2.0)
        assert ctrl.mode == "delete_ready"
        assert ctrl.delete_range == TimeRange(2.0, 4.0)

    def test_scenario_extract_request_cancels_delete(self, ctrl):
        ctrl.request_delete_mode()
        ctrl.on_timeline_click(4.0)
        ctrl.request_extract_mode()
        assert ctrl.mode == "selecting_extract"
        assert ctrl.selection_start is None
        assert ctrl.delete_range is None

    def test_mutual_exclusion_over_sequence(self, ctrl):
        steps = [
            ctrl.request_delete_mode,
            lambda: ctrl.on_timeline_click(1.0),
            lambda: ctrl.on_timeline_click(5.0),
            ctrl.request_extract_mode,
            lambda: ctrl.on_timeline_click(6.0),
            ctrl.request_delete_mode,
            lambda: ctrl.on_timeline_click(8.0),
            lambda: ctrl.on_timeline_click(9.0),
            ctrl.request_extract_mode,
            lambda: ctrl.on_timeline_click(2.0),
            lambda: ctrl.on_timeline_click(3.0),
        ]
        for step in steps:
            step()
            if ctrl.mode in ("selecting_delete", "delete_ready"):
                assert ctrl.extract_range is None
                assert ctrl.extract_range_percent == (0.0, 0.0)
            if ctrl.mode in ("selecting_extract", "extract_ready"):
                assert ctrl.delete_range is None
                assert ctrl.delete_range_percent == (0.0, 0.0)
        assert ctrl.extract_range == TimeRange(2.0, 3.0)

    def test_commit_emits_request(self, ctrl, emitted):
        _ready_delete(ctrl, 2.0, 4.0)
        result = ctrl.commit_delete_range()
        assert result
        assert result.value == TimeRange(2.0, 4.0)
        assert ctrl.mode == "idle"
        assert len(emitted) == 1
        req = emitted[0]
        assert req.kind == EditKind.DELETE_RANGE
        assert (req.start, req.end, req.source) == (2.0, 4.0, "clip.webm")

    def test_commit_extract(self, ctrl, emitted):
        ctrl.request_extract_mode()
        ctrl.on_timeline_click(6.0)
        ctrl.on_timeline_click(1.5)
        assert ctrl.commit_extract_range().value == TimeRange(1.5, 6.0)
        assert emitted[0].kind == EditKind.EXTRACT_RANGE

    def test_illegal_commit(self, ctrl, emitted):
        ctrl.request_delete_mode()
        ctrl.on_timeline_click(2.0)
        result = ctrl.commit_delete_range()
        assert result.reason == Rejection.ILLEGAL_COMMIT
        assert ctrl.mode == "selecting_delete"
        assert emitted == []

    def test_commit_wrong_kind(self, ctrl, emitted):
        _ready_delete(ctrl)
        assert ctrl.commit_extract_range().reason == Rejection.ILLEGAL_COMMIT
        assert ctrl.delete_range == TimeRange(2.0, 4.0)
        assert emitted == []

    def test_too_narrow_selection_is_no_selection(self, ctrl, emitted):
        _ready_delete(ctrl, 2.0, 2.05)
        assert ctrl.mode == "idle"
        assert ctrl.commit_delete_range().reason == Rejection.ILLEGAL_COMMIT

    def test_committed_ranges_exceed_minimum_width(self, ctrl, emitted):
        for a, b in [(1.0, 1.05), (3.0, 3.2), (5.0, 5.1), (7.0, 12.0)]:
            _ready_delete(ctrl, a, b)
            ctrl.commit_delete_range()
        assert emitted
        assert all(r.end - r.start > 0.1 for r in emitted)

    def test_processor_failure_returns_to_idle(self):
        def boom(request):
            raise RuntimeError("encode failed")

        c = TimelineController(processor=boom)
        c.load_asset(duration_hint=20.0)
        _ready_delete(c)
        seen = []
        c.subscribe(lambda event, snap: seen.append(event))
        result = c.commit_delete_range()
        assert not result
        assert result.reason == Rejection.PROCESSOR_FAILED
        assert result.message == "encode failed"
        assert c.mode == "idle"
        assert seen == ["commit_failed"]

    def test_processor_failure_on_split_and_trim(self):
        def boom(request):
            raise RuntimeError("encode failed")

        c = TimelineController(processor=boom)
        c.load_asset(duration_hint=20.0)
        c.set_trim(2.0, 6.0)
        assert c.split_at_midpoint().reason == Rejection.PROCESSOR_FAILED
        assert c.request_trim().reason == Rejection.PROCESSOR_FAILED
        assert c.trim == TimeRange(2.0, 6.0)

    def test_cancel(self, ctrl, emitted):
        _ready_delete(ctrl)
        assert ctrl.cancel_selection()
        assert ctrl.mode == "idle"
        assert emitted == []

    def test_cancel_when_idle_is_harmless(self, ctrl):
        assert ctrl.cancel_selection()
        assert ctrl.mode == "idle"


class TestTrim:
    def test_scenario_reversed_trim_normalized(self, ctrl):
        result = ctrl.set_trim(5, 3)
        assert result
        assert ctrl.trim.start == 3
        assert ctrl.trim.end == 5

    def test_trim_clamped_to_duration(self, ctrl):
        ctrl.set_trim(15.0, 40.0)
        assert ctrl.trim == TimeRange(15.0, 20.0)

    def test_trim_entirely_outside_rejected(self, ctrl):
        before = ctrl.trim
        result = ctrl.set_trim(25.0, 40.0)
        assert result.reason == Rejection.OUT_OF_RANGE
        assert ctrl.trim == before

    def test_zero_width_rejected(self, ctrl):
        before = ctrl.trim
        result = ctrl.set_trim(4.0, 4.0)
        assert result.reason == Rejection.INVALID_INPUT
        assert ctrl.trim == before

    def test_exact_minimum_width_accepted(self, ctrl):
        result = ctrl.set_trim(0.2, 0.3)
        assert result
        assert ctrl.trim == TimeRange(0.2, 0.3)

    def test_adjusted_minimum_trim_can_be_requested(self, ctrl, emitted):
        ctrl.set_trim(2.0, 4.3)
        ctrl.adjust_trim("start", 10)
        assert ctrl.trim.start == pytest.approx(4.2)
        assert ctrl.request_trim()
        assert emitted[-1].kind == EditKind.TRIM

    def test_nan_rejected(self, ctrl):
        assert ctrl.set_trim(math.nan, 4.0).reason == Rejection.INVALID_INPUT

    def test_adjust_start_respects_minimum_gap(self, ctrl):
        ctrl.set_trim(2.0, 4.0)
        ctrl.adjust_trim("start", 10.0)
        assert ctrl.trim.start == pytest.approx(3.9)
        assert ctrl.trim.end == 4.0

    def test_adjust_start_not_negative(self, ctrl):
        ctrl.set_trim(2.0, 4.0)
        ctrl.adjust_trim("start", -5.0)
        assert ctrl.trim.start == 0.0

    def test_adjust_end_bounded_by_duration(self, ctrl):
        ctrl.set_trim(2.0, 4.0)
        ctrl.adjust_trim("end", 100.0)
        assert ctrl.trim.end == 20.0
        ctrl.adjust_trim("end", -100.0)
        assert ctrl.trim.end == pytest.approx(2.1)

    def test_adjust_unknown_edge(self, ctrl):
        assert ctrl.adjust_trim("middle", 1.0).reason == Rejection.INVALID_INPUT

    def test_request_trim_emits(self, ctrl, emitted):
        ctrl.set_trim(1.0, 6.0)
        assert ctrl.request_trim()
        assert emitted[0].kind == EditKind.TRIM
        assert (emitted[0].start, emitted[0].end) == (1.0, 6.0)

    def test_jump_to_trim_markers(self, ctrl):
        ctrl.set_trim(3.0, 8.0)
        ctrl.jump_to_trim_end()
        assert ctrl.clock.current_time == 8.0
        ctrl.jump_to_trim_start()
        assert ctrl.clock.current_time == 3.0


class TestSplit:
    def test_split_at_current_time(self, ctrl, emitted):
        ctrl.seek(7.5)
        result = ctrl.split_at_current_time()
        assert result.value == 7.5
        assert emitted[0].kind == EditKind.SPLIT
        assert emitted[0].at == 7.5

    def test_split_at_start_is_noop(self, ctrl, emitted):
        assert not ctrl.can_split_at_current_time
        result = ctrl.split_at_current_time()
        assert result.reason == Rejection.OUT_OF_RANGE
        assert emitted == []

    def test_split_at_end_is_noop(self, ctrl):
        ctrl.seek(20.0)
        assert not ctrl.split_at_current_time()

    def test_split_at_midpoint(self, ctrl):
        assert ctrl.can_split_at_midpoint
        assert ctrl.split_at_midpoint().value == 10.0

    def test_midpoint_without_duration(self):
        c = TimelineController()
        c.load_asset()
        assert not c.can_split_at_midpoint
        assert not c.split_at_midpoint()


class TestSeekAndSkip:
    def test_skip_clamps(self, ctrl):
        ctrl.skip(10)
        ctrl.skip(10)
        ctrl.skip(10)
        assert ctrl.clock.current_time == 20.0
        ctrl.skip(-50)
        assert ctrl.clock.current_time == 0.0

    def test_skip_nan(self, ctrl):
        assert ctrl.skip(math.nan).reason == Rejection.INVALID_INPUT


class TestDerivedValues:
    def test_percentages(self, ctrl):
        ctrl.set_trim(5.0, 15.0)
        ctrl.seek(10.0)
        assert ctrl.trim_start_percent == 25.0
        assert ctrl.trim_end_percent == 75.0
        assert ctrl.current_time_percent == 50.0
        assert ctrl.is_current_time_in_trim_range
        assert ctrl.trim_duration == 10.0

    def test_outside_trim(self, ctrl):
        ctrl.set_trim(5.0, 15.0)
        ctrl.seek(16.0)
        assert not ctrl.is_current_time_in_trim_range

    def test_range_percent_undefined(self, ctrl):
        assert ctrl.delete_range_percent == (0.0, 0.0)
        assert ctrl.extract_range_percent == (0.0, 0.0)

    def test_range_percent_ready(self, ctrl):
        _ready_delete(ctrl, 2.0, 4.0)
        assert ctrl.delete_range_percent == (10.0, 20.0)

    def test_in_progress_range_follows_playhead(self, ctrl):
        ctrl.seek(10.0)
        ctrl.request_extract_mode()
        ctrl.on_timeline_click(5.0)
        assert ctrl.extract_range_percent == (25.0, 50.0)

    def test_zero_duration_percentages(self):
        c = TimelineController()
        c.load_asset()
        assert c.trim_start_percent == 0.0
        assert c.current_time_percent == 0.0


class TestObservers:
    def test_events_carry_snapshot(self, ctrl):
        seen = []
        ctrl.subscribe(lambda event, snap: seen.append((event, snap)))
        ctrl.seek(4.0)
        ctrl.request_delete_mode()
        event, snap = seen[-1]
        assert [e for e, _ in seen] == ["seek", "mode"]
        assert snap.mode == "selecting_delete"
        assert snap.current_time == 4.0
        assert snap.to_dict()["duration"] == 20.0

    def test_rejected_operation_does_not_notify(self, ctrl):
        seen = []
        ctrl.subscribe(lambda event, snap: seen.append(event))
        ctrl.set_trim(math.nan, 1.0)
        ctrl.commit_extract_range()
        assert seen == []

    def test_stale_selection_event(self, ctrl):
        _ready_delete(ctrl, 2.0, 4.0)
        seen = []
        unsubscribe = ctrl.subscribe(lambda event, snap: seen.append(event))
        ctrl.on_duration_reported(3.0)
        assert seen == ["selection_discarded", "duration"]
        unsubscribe()
        ctrl.seek(1.0)
        assert seen == ["selection_discarded", "duration"]
