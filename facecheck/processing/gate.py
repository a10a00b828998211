# facecheck/processing/gate.py
"""
Capture Gate - state machine cho một lần chấm công bằng khuôn mặt.

    IDLE -> ARMED(type) -> CAPTURING -> SUBMITTING -> SUCCEEDED
                 ^             |             |
                 +-- FAILED <--+-------------+
    (bất kỳ state nào) -- cancel() --> IDLE   (luôn release camera)

Quy tắc:
- Loại chấm công lấy từ AttendanceSession, không tự chọn.
- capture() chỉ có tác dụng khi có mặt và confidence >= ngưỡng (0.5).
- Lúc chụp luôn detect lại trên frame mới, không dùng kết quả tick trước.
- Mỗi lượt ARMED -> CAPTURING -> SUBMITTING gửi đúng một request.
- Kết quả submit về sau khi đã cancel/đổi phiên thì bị bỏ qua.

Usage:
    gate = CaptureGate(camera, detector, session, submitter)
    gate.arm()              # mở camera, bắt đầu detect
    if gate.can_capture():
        gate.capture()      # detect lại + gửi descriptor (thread riêng)
    gate.cancel()           # hủy, release camera
"""
import logging
import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, List, Optional

from ..api.models import CaptureType
from ..core.errors import (
    CaptureError, CaptureNotAllowed, FailureReason,
    ModelLoadError, NoFaceAtCapture, SubmissionError,
)
from ..descriptor import extract_descriptor

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.5


class GateState(Enum):
    """Trạng thái của Capture Gate."""
    IDLE = "idle"
    ARMED = "armed"
    CAPTURING = "capturing"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class CaptureSession:
    """Phiên chụp, tạo khi arm(), hủy khi cancel / thành công."""
    type: CaptureType
    token: int
    armed: bool = True
    confidence: float = 0.0
    submitting: bool = False


@dataclass(frozen=True)
class GateSnapshot:
    """Ảnh chụp trạng thái gate cho UI."""
    state: GateState
    capture_type: Optional[CaptureType]
    confidence: float
    face_detected: bool
    capture_enabled: bool
    has_camera: bool
    failure: Optional[FailureReason] = None
    message: Optional[str] = None


class CaptureGate:
    """
    Điều phối camera, Presence Detector, view model và Submission Client.
    Thread-safe: mọi chuyển trạng thái đi qua một RLock.
    """

    def __init__(
        self,
        camera,
        detector,
        session,
        submitter,
        min_confidence: float = MIN_CONFIDENCE,
        model_error: Optional[ModelLoadError] = None,
        run_async: bool = True,
        on_change: Optional[Callable[[GateSnapshot], None]] = None,
    ):
        """
        Args:
            camera: CameraManager
            detector: PresenceDetector (None nếu model không load được)
            session: AttendanceSession
            submitter: SubmissionClient
            min_confidence: Ngưỡng confidence để cho phép chụp
            model_error: Lỗi load model (tắt toàn bộ tính năng chụp)
            run_async: True = submit trong thread riêng
            on_change: Callback nhận GateSnapshot sau mỗi thay đổi
        """
        self.camera = camera
        self.detector = detector
        self.session = session
        self.submitter = submitter
        self.min_confidence = min_confidence
        self.run_async = run_async
        self._on_change = on_change

        if detector is None and model_error is None:
            model_error = ModelLoadError()
        self.model_error = model_error

        self._lock = threading.RLock()
        self._state = GateState.IDLE
        self._session: Optional[CaptureSession] = None
        self._stream = None
        self._token = 0
        self._failure: Optional[FailureReason] = None
        self._message: Optional[str] = None
        self._worker: Optional[threading.Thread] = None
        self._closed = False
        self._history: Deque[GateState] = deque([GateState.IDLE], maxlen=32)

    # ------------------------------------------------------------------
    # Query
    @property
    def state(self) -> GateState:
        with self._lock:
            return self._state

    @property
    def capture_session(self) -> Optional[CaptureSession]:
        with self._lock:
            return self._session

    @property
    def history(self) -> List[GateState]:
        """Các state đã đi qua gần đây (cũ -> mới)."""
        with self._lock:
            return list(self._history)

    def can_capture(self) -> bool:
        """Nút chụp chỉ bật khi ARMED, có mặt và đủ confidence."""
        with self._lock:
            if self._state is not GateState.ARMED or self.detector is None:
                return False
            presence = self.detector.latest()
            return presence.face_detected and presence.confidence >= self.min_confidence

    def snapshot(self) -> GateSnapshot:
        with self._lock:
            presence = self.detector.latest() if self.detector is not None else None
            return GateSnapshot(
                state=self._state,
                capture_type=self._session.type if self._session else None,
                confidence=presence.confidence if presence else 0.0,
                face_detected=presence.face_detected if presence else False,
                capture_enabled=self.can_capture(),
                has_camera=self.camera.has_camera,
                failure=self._failure,
                message=self._message,
            )

    # ------------------------------------------------------------------
    # Transitions
    def _set_state(self, state: GateState):
        if state is not self._state:
            logger.debug(f"Gate: {self._state.value} -> {state.value}")
        self._state = state
        self._history.append(state)

    def _record_failure(self, error: CaptureError):
        self._failure = error.reason
        self._message = error.message
        logger.warning(f"⚠️ {error.reason.value}: {error.message}")

    def _notify(self):
        if self._on_change is not None:
            self._on_change(self.snapshot())

    def arm(self, requested: Optional[CaptureType] = None) -> bool:
        """
        IDLE -> ARMED(type): mở camera và bắt đầu detect.

        Args:
            requested: Loại người dùng bấm; phải khớp loại view model cho phép

        Returns:
            True nếu gate đang ARMED sau lời gọi
        """
        with self._lock:
            if self._closed:
                return False
            if self._state in (GateState.CAPTURING, GateState.SUBMITTING):
                return False
            if self._state is GateState.ARMED:
                return requested is None or self._session.type is requested

            try:
                if self.model_error is not None:
                    raise self.model_error
                capture_type = self.session.capture_type
                if capture_type is None:
                    raise CaptureNotAllowed()
                if requested is not None and requested is not capture_type:
                    raise CaptureNotAllowed(
                        f"{requested.label} is not available, next action is {capture_type.label}"
                    )
                stream = self.camera.acquire()
            except CaptureError as e:
                self._record_failure(e)
                self._set_state(GateState.IDLE)
                armed = False
            else:
                armed = True
                self._token += 1
                self._session = CaptureSession(type=capture_type, token=self._token)
                self._stream = stream
                self._failure = None
                self._message = None
                self.detector.start(stream)
                self._set_state(GateState.ARMED)
                logger.info(f"📷 Armed: {capture_type.label}")

        self._notify()
        return armed

    def capture(self) -> bool:
        """
        ARMED -> CAPTURING -> SUBMITTING.

        Không làm gì nếu nút chụp đang tắt. Detect lại trên frame mới;
        không có mặt -> FAILED(NO_FACE_AT_CAPTURE) rồi quay về ARMED.

        Returns:
            True nếu đã bắt đầu gửi request
        """
        with self._lock:
            if not self.can_capture():
                return False

            self._set_state(GateState.CAPTURING)
            session = self._session
            try:
                detections = self._redetect()
                descriptor = extract_descriptor(detections)
            except NoFaceAtCapture as e:
                self._record_failure(e)
                self._set_state(GateState.FAILED)
                self._set_state(GateState.ARMED)
                started = False
            else:
                session.confidence = float(detections[0].probability)
                session.submitting = True
                self._failure = None
                self._message = None
                self._set_state(GateState.SUBMITTING)
                started = True
                args = (session.token, descriptor, session.confidence, session.type)
                if self.run_async:
                    self._worker = threading.Thread(
                        target=self._submit, args=args,
                        name="attendance-submit", daemon=True,
                    )
                    self._worker.start()

        self._notify()
        if started and not self.run_async:
            self._submit(*args)
        return started

    def _redetect(self):
        frame = self._stream.read() if self._stream is not None else None
        if frame is None:
            raise NoFaceAtCapture("Camera frame unavailable during capture")
        try:
            return self.detector.detect(frame)
        except Exception as e:
            logger.warning(f"Lỗi detect lúc chụp: {e}")
            raise NoFaceAtCapture() from e

    def _submit(self, token: int, descriptor, confidence: float, capture_type: CaptureType):
        logger.info(f"📤 Gửi {capture_type.label} (confidence={confidence:.2f})")
        try:
            ack = self.submitter.submit(descriptor, confidence, capture_type)
        except SubmissionError as e:
            self._on_failure(token, e)
            return
        self._on_success(token, ack)

    def _is_current(self, token: int) -> bool:
        return self._session is not None and self._session.token == token

    def _on_failure(self, token: int, error: SubmissionError):
        with self._lock:
            if not self._is_current(token):
                logger.info("Bỏ qua lỗi submit của phiên đã hủy")
                return
            self._session.submitting = False
            self._record_failure(error)
            self._set_state(GateState.FAILED)
            self._set_state(GateState.ARMED)
        self._notify()

    def _on_success(self, token: int, ack):
        with self._lock:
            if not self._is_current(token):
                logger.info("Bỏ qua kết quả submit của phiên đã hủy")
                return
            self._session = None
            self._message = ack.message
            self._failure = None
            self._release_locked()
            self._set_state(GateState.SUCCEEDED)
            logger.info(f"✅ {ack.message}")

        # Server quyết định loại thực tế: lấy bản ghi trả về, rồi tải lại
        if ack.record is not None:
            self.session.apply_record(ack.record)
        try:
            self.session.refresh()
        except SubmissionError as e:
            logger.warning(f"Không tải lại được bản ghi sau khi chấm công: {e.message}")
        self._notify()

    def _release_locked(self):
        if self.detector is not None:
            self.detector.stop()
        stream, self._stream = self._stream, None
        self.camera.release(stream)

    def cancel(self):
        """Bất kỳ state -> IDLE. Luôn release camera."""
        with self._lock:
            self._session = None
            self._token += 1
            self._failure = None
            self._message = None
            self._release_locked()
            self._set_state(GateState.IDLE)
        self._notify()

    def close(self):
        """Teardown: như cancel() và không cho arm() nữa."""
        with self._lock:
            self._closed = True
        self.cancel()

    def wait_for_submission(self, timeout: Optional[float] = None) -> bool:
        """Chờ request đang gửi (nếu có) xong. True nếu không còn request."""
        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()
