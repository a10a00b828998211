# facecheck/core/camera.py
"""
Camera Session Manager.

Mở/đóng camera trước (front-facing, chỉ video) với retry logic.
acquire() trả về một CameraStream dạng guard: thoát khỏi `with` hoặc gọi
stop()/release() bao nhiêu lần cũng được, camera luôn được giải phóng.

Usage:
    from facecheck.core.camera import CameraManager

    manager = CameraManager()
    with manager.acquire() as stream:
        frame = stream.read()
        # process frame...
    # camera đã được release
"""
import cv2
import time
import logging
import threading
from typing import Optional, Protocol, Tuple
from dataclasses import dataclass

from .errors import CameraUnavailable

logger = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    """Cấu hình camera."""
    index: int = 0
    width: int = 640
    height: int = 480
    buffer_size: int = 1
    warmup_frames: int = 3
    max_retries: int = 2
    retry_delay: float = 0.5


class CameraProvider(Protocol):
    """Nguồn tạo VideoCapture (thay được trong test)."""

    def open(self, index: int) -> "cv2.VideoCapture":
        ...


class DefaultCameraProvider:
    """Provider thật, dùng OpenCV."""

    def open(self, index: int) -> "cv2.VideoCapture":
        return cv2.VideoCapture(index)


class CameraStream:
    """
    Guard cho một phiên camera đang mở.

    Thread-safe: render loop và Presence Detector cùng đọc frame.
    """

    def __init__(self, capture, on_stop=None):
        self._capture = capture
        self._on_stop = on_stop
        self._lock = threading.Lock()
        self._latest = None

    @property
    def active(self) -> bool:
        return self._capture is not None

    def read(self):
        """
        Đọc một frame mới từ camera.

        Returns:
            Frame (numpy array) hoặc None nếu stream đã dừng / lỗi đọc
        """
        with self._lock:
            if self._capture is None:
                return None
            ret, frame = self._capture.read()
            if not ret or frame is None:
                logger.debug("Không đọc được frame!")
                return None
            self._latest = frame
            return frame

    def latest_frame(self):
        """Frame gần nhất đã đọc (không chạm vào camera)."""
        with self._lock:
            return self._latest

    def stop(self):
        """Dừng stream. Gọi nhiều lần không sao."""
        with self._lock:
            capture = self._capture
            self._capture = None
            self._latest = None
        if capture is None:
            return
        try:
            capture.release()
        finally:
            logger.info("📹 Camera released")
            if self._on_stop is not None:
                self._on_stop(self)

    def get_resolution(self) -> Tuple[int, int]:
        """Lấy resolution thực tế."""
        with self._lock:
            if self._capture is None:
                return (0, 0)
            return (
                int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
                int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
            )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False


class CameraManager:
    """
    Quản lý quyền sở hữu camera: tại một thời điểm chỉ có một stream.
    """

    def __init__(
        self,
        config: Optional[CameraConfig] = None,
        provider: Optional[CameraProvider] = None,
    ):
        self.config = config or CameraConfig()
        self.provider = provider or DefaultCameraProvider()
        self.has_camera = True
        self._stream: Optional[CameraStream] = None
        self._lock = threading.Lock()

    def acquire(self) -> CameraStream:
        """
        Mở camera với retry logic.

        Returns:
            CameraStream đang hoạt động

        Raises:
            CameraUnavailable: không có thiết bị hoặc bị từ chối quyền
        """
        with self._lock:
            if self._stream is not None and self._stream.active:
                return self._stream

            for attempt in range(self.config.max_retries):
                capture = None
                try:
                    capture = self.provider.open(self.config.index)
                    if capture is not None and capture.isOpened():
                        self._configure_camera(capture)
                        self._warmup(capture)
                        self._stream = CameraStream(capture, on_stop=self._forget)
                        self.has_camera = True
                        logger.info(f"📹 Camera opened: index={self.config.index}")
                        return self._stream
                except cv2.error as e:
                    logger.warning(f"Camera error: {e}")

                if capture is not None:
                    capture.release()

                if attempt < self.config.max_retries - 1:
                    logger.warning(
                        f"⚠️ Camera không sẵn sàng, thử lại "
                        f"({attempt + 1}/{self.config.max_retries})..."
                    )
                    time.sleep(self.config.retry_delay)

            self.has_camera = False
            logger.error("❌ Không thể kết nối camera!")
            raise CameraUnavailable()

    def release(self, stream: Optional[CameraStream]):
        """Giải phóng camera. Idempotent, stream=None thì bỏ qua."""
        if stream is not None:
            stream.stop()

    def _forget(self, stream: CameraStream):
        with self._lock:
            if self._stream is stream:
                self._stream = None

    @property
    def active_stream(self) -> Optional[CameraStream]:
        return self._stream

    def _configure_camera(self, capture):
        """Cấu hình camera settings."""
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        capture.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)

    def _warmup(self, capture):
        """Đọc vài frame đầu để camera ổn định."""
        for _ in range(self.config.warmup_frames):
            capture.grab()


def create_camera(settings) -> CameraManager:
    """Factory tạo CameraManager từ Settings."""
    config = CameraConfig(
        index=settings.CAMERA_INDEX,
        width=settings.CAMERA_WIDTH,
        height=settings.CAMERA_HEIGHT,
        warmup_frames=settings.CAMERA_WARMUP_FRAMES,
    )
    return CameraManager(config=config)
