"""
Fakes dùng chung cho test: camera, model, detector, API.
Không test nào chạm vào camera thật, file model hay mạng.
"""
import threading
from datetime import date

import numpy as np
import pytest

from facecheck.api.models import SubmissionAck
from facecheck.core.camera import CameraConfig, CameraManager
from facecheck.detect.detect import Detection
from facecheck.detect.presence import PresenceState
from facecheck.processing.attendance import AttendanceSession

TODAY = date(2024, 5, 2)


def make_frame(width=64, height=48):
    return np.zeros((height, width, 3), dtype=np.uint8)


class FakeCapture:
    """Giả lập cv2.VideoCapture."""

    def __init__(self, opened=True, frames=None):
        self.opened = opened
        self.frames = list(frames) if frames is not None else None
        self.release_count = 0
        self.grab_count = 0
        self.props = {}

    def isOpened(self):
        return self.opened

    def read(self):
        if self.release_count:
            return False, None
        if self.frames is None:
            return True, make_frame()
        if not self.frames:
            return False, None
        return True, self.frames.pop(0)

    def grab(self):
        self.grab_count += 1
        return True

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def get(self, prop):
        return self.props.get(prop, 0)

    def release(self):
        self.release_count += 1


class FakeProvider:
    """Provider trả về FakeCapture, ghi lại mọi lần mở."""

    def __init__(self, available=True):
        self.available = available
        self.captures = []

    def open(self, index):
        capture = FakeCapture(opened=self.available)
        self.captures.append(capture)
        return capture

    @property
    def last(self):
        return self.captures[-1] if self.captures else None


class FakeModel:
    """Model trả về kết quả theo kịch bản; phần tử cuối được lặp lại."""

    def __init__(self, *results):
        self.results = list(results) or [[]]
        self.calls = 0

    def estimate_faces(self, frame):
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return list(result)


class FakeStream:
    def __init__(self, frame=None, empty=False):
        self.frame = None if empty else (make_frame() if frame is None else frame)
        self.reads = 0

    def read(self):
        self.reads += 1
        return self.frame


class FakeDetector:
    """PresenceDetector giả: trạng thái đặt bằng tay, không có thread."""

    def __init__(self):
        self.interval = 0.0
        self.state = PresenceState()
        self.detections = []
        self.error = None
        self.started = []
        self.stop_count = 0

    def see(self, detection):
        self.state = PresenceState(
            face_detected=True,
            confidence=detection.probability,
            detection=detection,
            face_count=1,
        )
        self.detections = [detection]

    def lose(self):
        self.state = PresenceState()
        self.detections = []

    def latest(self):
        return self.state

    def detect(self, frame):
        if self.error is not None:
            raise self.error
        return list(self.detections)

    def start(self, stream):
        self.started.append(stream)

    def stop(self):
        self.stop_count += 1
        self.state = PresenceState()


class FakeApi:
    """
    AttendanceApiClient giả.
    `responses` là danh sách kết quả cho fetch_attendance (list record dict
    hoặc Exception); phần tử cuối được lặp lại.
    """

    def __init__(self, *responses):
        self.responses = list(responses) or [[]]
        self.fetch_calls = []
        self.register_calls = []
        self.register_result = {"message": "Face registered successfully"}
        self.register_hook = None

    def fetch_attendance(self, start_date, end_date):
        self.fetch_calls.append((start_date, end_date))
        result = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(result, Exception):
            raise result
        return list(result)

    def register_face(self, descriptor, confidence):
        self.register_calls.append((list(descriptor), confidence))
        if self.register_hook is not None:
            self.register_hook()
        if isinstance(self.register_result, Exception):
            raise self.register_result
        return self.register_result


class FakeSubmitter:
    """SubmissionClient giả; `block` giữ request cho tới khi được set."""

    def __init__(self, ack=None, error=None, block=False):
        self.ack = ack or SubmissionAck(message="Attendance marked successfully")
        self.error = error
        self.calls = []
        self.entered = threading.Event()
        self.proceed = threading.Event()
        if not block:
            self.proceed.set()

    def submit(self, descriptor, confidence, capture_type):
        self.calls.append((list(descriptor), confidence, capture_type))
        self.entered.set()
        self.proceed.wait(5)
        if self.error is not None:
            raise self.error
        return self.ack


def record_dict(check_in=None, check_out=None, day="2024-05-02T00:00:00.000Z", status="present"):
    data = {"date": day, "status": status, "checkIn": None, "checkOut": None}
    if check_in:
        data["checkIn"] = {"time": check_in, "verified": True}
    if check_out:
        data["checkOut"] = {"time": check_out, "verified": True}
    return data


@pytest.fixture
def make_detection():
    def factory(probability=0.9, offset=0.0):
        landmarks = tuple(
            (100.0 + offset + 10 * i, 120.0 + offset + 5 * i) for i in range(6)
        )
        return Detection(
            top_left=(80.0 + offset, 90.0 + offset),
            bottom_right=(200.0 + offset, 230.0 + offset),
            landmarks=landmarks,
            probability=probability,
        )
    return factory


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def camera(provider):
    config = CameraConfig(max_retries=2, retry_delay=0.0, warmup_frames=2)
    return CameraManager(config=config, provider=provider)


@pytest.fixture
def detector():
    return FakeDetector()


@pytest.fixture
def api():
    return FakeApi([])


@pytest.fixture
def session(api):
    return AttendanceSession(api, today=lambda: TODAY)
