# facecheck/processing/enrollment.py
"""
Đăng ký khuôn mặt cho tài khoản (POST /api/users/face).

Dùng chung camera, Presence Detector (nhịp chậm 2 Hz) và Descriptor
Extractor với luồng chấm công.

Usage:
    with FaceEnrollment(camera, detector, api) as enrollment:
        while not enrollment.face_detected:
            time.sleep(0.5)
        enrollment.register()
"""
import logging
import threading
from typing import Any, Dict, Optional

from ..core.errors import NoFaceAtCapture
from ..descriptor import extract_descriptor

logger = logging.getLogger(__name__)


class FaceEnrollment:
    """Một phiên đăng ký khuôn mặt."""

    def __init__(self, camera, detector, api):
        self.camera = camera
        self.detector = detector
        self.api = api
        self._stream = None
        self._busy = threading.Lock()

    @property
    def active(self) -> bool:
        return self._stream is not None and self._stream.active

    @property
    def face_detected(self) -> bool:
        return self.active and self.detector.latest().face_detected

    def start(self):
        """Mở camera và bật detect thụ động. Raises CameraUnavailable."""
        if self.active:
            return
        self._stream = self.camera.acquire()
        self.detector.start(self._stream)
        logger.info("🙂 Bắt đầu đăng ký khuôn mặt")

    def register(self) -> Optional[Dict[str, Any]]:
        """
        Detect lại trên frame mới và gửi descriptor lên server.

        Returns:
            Response của server, hoặc None nếu đang có request khác

        Raises:
            NoFaceAtCapture: không thấy mặt
            SubmissionError: lỗi mạng / server (camera vẫn mở để thử lại)
        """
        if not self._busy.acquire(blocking=False):
            return None
        try:
            if not self.face_detected:
                raise NoFaceAtCapture("No face detected. Please position your face in the frame")

            frame = self._stream.read()
            detections = self.detector.detect(frame) if frame is not None else []
            descriptor = extract_descriptor(detections)

            response = self.api.register_face(descriptor, detections[0].probability)
            logger.info("✅ Đã đăng ký khuôn mặt")
            self.stop()
            return response
        finally:
            self._busy.release()

    def stop(self):
        """Dừng detect và release camera. Idempotent."""
        self.detector.stop()
        stream, self._stream = self._stream, None
        self.camera.release(stream)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
