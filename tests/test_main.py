from unittest import mock

import numpy as np
import pytest

from facecheck import main as app
from facecheck.api.models import AttendanceRecord, CaptureType
from facecheck.core.errors import FailureReason, SubmissionNetworkError, SubmissionRejected
from facecheck.core.settings import settings
from facecheck.processing.display import DisplayHandler
from facecheck.processing.gate import CaptureGate, GateSnapshot, GateState

from conftest import FakeSubmitter, record_dict


def test_parse_arguments():
    args = app.parse_arguments([
        "--api-url", "http://srv:5000", "--camera", "1",
        "--resolution", "320x240", "--min-confidence", "0.7", "--headless",
    ])
    assert args.api_url == "http://srv:5000"
    assert args.camera == 1
    assert args.min_confidence == 0.7
    assert args.headless
    assert not args.enroll


def test_apply_arguments_updates_settings(monkeypatch):
    for key in ("API_BASE_URL", "CAMERA_INDEX", "CAMERA_WIDTH", "CAMERA_HEIGHT",
                "MIN_CONFIDENCE", "HEADLESS_MODE", "OVERLAY_ENABLED"):
        monkeypatch.setattr(settings, key, getattr(settings, key))

    args = app.parse_arguments([
        "--api-url", "http://srv:5000", "--camera", "1",
        "--resolution", "320x240", "--min-confidence", "0.7", "--headless",
    ])
    changes = app.apply_arguments(args)

    assert settings.api_base_url == "http://srv:5000"
    assert (settings.CAMERA_WIDTH, settings.CAMERA_HEIGHT) == (320, 240)
    assert settings.min_confidence == 0.7
    assert settings.headless_mode
    assert len(changes) == 5


def test_bad_resolution_is_ignored(monkeypatch):
    monkeypatch.setattr(settings, "CAMERA_WIDTH", 640)
    args = app.parse_arguments(["--resolution", "wide"])
    assert app.apply_arguments(args) == []
    assert settings.CAMERA_WIDTH == 640


@pytest.mark.parametrize("key, call, arg", [
    ("i", "arm", CaptureType.CHECK_IN),
    ("o", "arm", CaptureType.CHECK_OUT),
    (" ", "capture", None),
    ("c", "capture", None),
    ("x", "cancel", None),
])
def test_keyboard_drives_gate(key, call, arg):
    gate, session = mock.Mock(), mock.Mock()

    assert not app.handle_keyboard(ord(key), gate, session)

    method = getattr(gate, call)
    if arg is None:
        method.assert_called_once_with()
    else:
        method.assert_called_once_with(arg)


def test_keyboard_refresh_and_quit():
    gate, session = mock.Mock(), mock.Mock()
    assert not app.handle_keyboard(ord("r"), gate, session)
    session.refresh.assert_called_once_with()
    assert app.handle_keyboard(ord("q"), gate, session)


def test_overlay_draws_without_error(make_detection):
    display = DisplayHandler(overlay_enabled=True)
    frame = np.zeros((480, 640, 3), dtype=np.uint8)
    snapshot = GateSnapshot(
        state=GateState.ARMED,
        capture_type=CaptureType.CHECK_OUT,
        confidence=0.8,
        face_detected=True,
        capture_enabled=True,
        has_camera=True,
        failure=FailureReason.SUBMISSION_REJECTED,
        message="Đã chấm công",
    )

    display.draw_detection(frame, make_detection(0.8), ready=True)
    display.draw_confidence(frame, 0.8)
    display.draw_gate_status(frame, snapshot)
    display.draw_record(frame, AttendanceRecord.from_dict(record_dict(check_in="2024-05-02T08:00:00Z")))

    assert frame.any()


def test_placeholder_size():
    image = DisplayHandler().placeholder("No camera", (320, 240))
    assert image.shape == (240, 320, 3)


def make_headless_gate(camera, detector, session, submitter):
    return CaptureGate(camera, detector, session, submitter, run_async=False)


def test_headless_stops_after_server_rejection(camera, detector, session, make_detection):
    submitter = FakeSubmitter(error=SubmissionRejected("Already checked in today", 400))
    gate = make_headless_gate(camera, detector, session, submitter)
    detector.see(make_detection(0.9))

    assert not app.run_headless(gate, timeout=1.0, retry_delay=0.0)

    assert len(submitter.calls) == 1
    assert gate.snapshot().message == "Already checked in today"


def test_headless_retries_network_errors_up_to_limit(camera, detector, session, make_detection):
    submitter = FakeSubmitter(error=SubmissionNetworkError())
    gate = make_headless_gate(camera, detector, session, submitter)
    detector.see(make_detection(0.9))

    assert not app.run_headless(gate, timeout=2.0, max_attempts=3, retry_delay=0.0)

    assert len(submitter.calls) == 3


def test_headless_success_submits_once(camera, provider, detector, session, make_detection):
    submitter = FakeSubmitter()
    gate = make_headless_gate(camera, detector, session, submitter)
    detector.see(make_detection(0.9))

    assert app.run_headless(gate, timeout=1.0)

    assert len(submitter.calls) == 1
    assert provider.last.release_count == 1
