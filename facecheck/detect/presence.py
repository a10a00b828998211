# facecheck/detect/presence.py
"""
Presence Detector.

Chạy model trên frame camera theo chu kỳ cố định (10 Hz khi chụp chấm công,
2 Hz khi đăng ký khuôn mặt) trong một thread riêng. Kết quả mới nhất được
ghi vào một "slot" duy nhất; Capture Gate chỉ đọc slot này khi cần quyết định.

Usage:
    detector = PresenceDetector(model, interval=0.1)
    detector.start(stream)
    ...
    state = detector.latest()
    if state.face_detected and state.confidence >= 0.5:
        ...
    detector.stop()
"""
import time
import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from .detect import Detection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresenceState:
    """Trạng thái phát hiện mặt tại một tick."""
    face_detected: bool = False
    confidence: float = 0.0
    detection: Optional[Detection] = None
    face_count: int = 0
    timestamp: float = 0.0


EMPTY_STATE = PresenceState()


def next_deadline(deadline: float, now: float, interval: float) -> float:
    """
    Mốc tick kế tiếp theo lịch cố định (deadline + k * interval).
    Tick chạy quá giờ thì bỏ qua các mốc đã lỡ, không chạy bù.
    """
    deadline += interval
    if deadline <= now:
        missed = int((now - deadline) // interval) + 1
        deadline += missed * interval
    return deadline


class PresenceDetector:
    """
    Vòng lặp phát hiện khuôn mặt định kỳ.

    Tick bị trễ thì bỏ qua, không có hàng đợi: tick sau thay thế tick trước.
    Chỉ detection đầu tiên (mạnh nhất) được dùng.
    """

    def __init__(
        self,
        model,
        interval: float = 0.1,
        hold_time: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        on_update: Optional[Callable[[PresenceState], None]] = None,
    ):
        """
        Args:
            model: object có estimate_faces(frame) -> List[Detection]
            interval: Chu kỳ tick (giây)
            hold_time: Giữ trạng thái "có mặt" thêm bao lâu khi mất mặt (0 = tắt)
            clock: Nguồn thời gian (thay được trong test)
            on_update: Callback nhận PresenceState sau mỗi tick
        """
        self.model = model
        self.interval = interval
        self.hold_time = hold_time
        self._clock = clock
        self._on_update = on_update

        self._lock = threading.Lock()
        self._latest = EMPTY_STATE
        self._last_seen = None
        self._stream = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    # ------------------------------------------------------------------
    # Detection
    def detect(self, frame) -> List[Detection]:
        """Chạy model trên một frame. Lỗi được ném ra cho caller."""
        return list(self.model.estimate_faces(frame))

    def tick(self, stream=None, stop_event=None) -> PresenceState:
        """
        Một lần poll: đọc frame, detect, publish vào slot.
        Lỗi tạm thời chỉ được log, trạng thái giữ nguyên đến tick sau.
        """
        stream = stream or self._stream
        if stream is None:
            return self.latest()

        frame = stream.read()
        if frame is None:
            return self.latest()

        try:
            detections = self.detect(frame)
        except Exception as e:  # tick sau sẽ tự phục hồi
            logger.debug(f"Lỗi detect frame: {e}")
            return self.latest()

        return self._publish(detections, stop_event)

    def _publish(self, detections: List[Detection], stop_event=None) -> PresenceState:
        now = self._clock()
        with self._lock:
            # vòng lặp đã bị dừng trong lúc detect: bỏ kết quả
            if stop_event is not None and stop_event.is_set():
                return self._latest
            if detections:
                first = detections[0]
                state = PresenceState(
                    face_detected=True,
                    confidence=float(first.probability),
                    detection=first,
                    face_count=len(detections),
                    timestamp=now,
                )
                self._last_seen = now
            elif (
                self.hold_time > 0
                and self._last_seen is not None
                and now - self._last_seen < self.hold_time
            ):
                state = self._latest
            else:
                state = PresenceState(timestamp=now)
            self._latest = state

        if self._on_update is not None:
            self._on_update(state)
        return state

    def latest(self) -> PresenceState:
        """Trạng thái mới nhất (không bao giờ là dữ liệu của phiên trước)."""
        with self._lock:
            return self._latest

    def reset(self):
        """Xóa trạng thái đã publish."""
        with self._lock:
            self._latest = EMPTY_STATE
            self._last_seen = None

    # ------------------------------------------------------------------
    # Scheduling
    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, stream):
        """Bắt đầu vòng lặp trên stream (dừng vòng lặp cũ nếu có)."""
        self.stop()
        self._stream = stream
        stop_event = threading.Event()
        self._stop_event = stop_event
        self._thread = threading.Thread(
            target=self._run,
            args=(stream, stop_event),
            name="presence-detector",
            daemon=True,
        )
        self._thread.start()
        logger.debug(f"Presence detector started ({1 / self.interval:.0f} Hz)")

    def _run(self, stream, stop_event: threading.Event):
        deadline = time.monotonic() + self.interval
        while not stop_event.wait(max(0.0, deadline - time.monotonic())):
            self.tick(stream, stop_event)
            deadline = next_deadline(deadline, time.monotonic(), self.interval)

    def stop(self, timeout: float = 1.0):
        """Dừng timer và bỏ trạng thái đang có."""
        stop_event, thread = self._stop_event, self._thread
        self._stop_event = None
        self._thread = None
        self._stream = None
        if stop_event is not None:
            stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self.reset()
