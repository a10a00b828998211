# facecheck/processing/display.py
"""
Display/UI Handler module.

Vẽ overlay lên frame camera: khung mặt, landmarks, thanh confidence,
trạng thái Capture Gate và bản ghi hôm nay.
Tách biệt logic hiển thị khỏi logic xử lý chính.

Usage:
    display = DisplayHandler(overlay_enabled=True)
    display.draw_detection(frame, detection, ready=True)
    display.draw_confidence(frame, 0.82, threshold=0.5)
    display.draw_gate_status(frame, gate.snapshot())
"""
import cv2
import numpy as np
from typing import Tuple, Optional
from dataclasses import dataclass

from ..api.models import AttendanceRecord, CaptureType
from ..core.errors import FailureReason
from ..detect.detect import Detection
from .gate import GateSnapshot, GateState


@dataclass
class ColorScheme:
    """Bảng màu (BGR format)."""
    FACE_OK: Tuple[int, int, int] = (129, 185, 16)     # Xanh lá
    FACE_WEAK: Tuple[int, int, int] = (0, 255, 255)    # Vàng
    LANDMARK: Tuple[int, int, int] = (246, 130, 59)    # Xanh dương
    PROGRESS_BG: Tuple[int, int, int] = (100, 100, 100)
    PROGRESS_FG: Tuple[int, int, int] = (0, 255, 0)
    CHECK_IN: Tuple[int, int, int] = (0, 255, 0)
    CHECK_OUT: Tuple[int, int, int] = (0, 165, 255)    # Cam
    ERROR: Tuple[int, int, int] = (0, 0, 255)          # Đỏ
    TEXT: Tuple[int, int, int] = (200, 200, 200)


# Text trên frame không dùng được dấu tiếng Việt (cv2.putText)
STATE_LABELS = {
    GateState.IDLE: "i=check-in  o=check-out  q=thoat",
    GateState.ARMED: "SPACE=chup  x=huy",
    GateState.CAPTURING: "Dang chup...",
    GateState.SUBMITTING: "Dang gui...",
    GateState.SUCCEEDED: "Thanh cong",
    GateState.FAILED: "That bai",
}

FAILURE_HINTS = {
    FailureReason.CAMERA_UNAVAILABLE: "Khong mo duoc camera",
    FailureReason.MODEL_LOAD_ERROR: "Khong load duoc model - hay khoi dong lai",
    FailureReason.NO_FACE_AT_CAPTURE: "Khong thay mat luc chup",
}


class DisplayHandler:
    """
    Xử lý tất cả hiển thị UI/overlay trên frame.
    """

    def __init__(
        self,
        overlay_enabled: bool = True,
        colors: Optional[ColorScheme] = None,
        font: int = cv2.FONT_HERSHEY_SIMPLEX,
        font_scale: float = 0.6,
        thickness: int = 2
    ):
        self.enabled = overlay_enabled
        self.colors = colors or ColorScheme()
        self.font = font
        self.font_scale = font_scale
        self.thickness = thickness

    def draw_detection(
        self,
        frame: np.ndarray,
        detection: Detection,
        ready: bool = True
    ):
        """
        Vẽ khung mặt + landmarks.

        Args:
            frame: Frame để vẽ
            detection: Detection của tick gần nhất
            ready: True nếu đủ confidence để chụp
        """
        if not self.enabled:
            return

        x, y, w, h = detection.box
        color = self.colors.FACE_OK if ready else self.colors.FACE_WEAK

        cv2.rectangle(frame, (x, y), (x + w, y + h), color, self.thickness)
        cv2.putText(
            frame, "Face Detected",
            (x, max(15, y - 10)),
            self.font, self.font_scale, color, self.thickness
        )

        for lx, ly in detection.landmarks:
            cv2.circle(frame, (int(lx), int(ly)), 3, self.colors.LANDMARK, -1)

    def draw_confidence(
        self,
        frame: np.ndarray,
        confidence: float,
        threshold: float = 0.5,
        position: Tuple[int, int] = (10, 20),
        width: int = 200
    ):
        """Vẽ thanh confidence, vạch trắng là ngưỡng cho phép chụp."""
        if not self.enabled:
            return

        x, y = position
        bar_height = 10

        cv2.rectangle(frame, (x, y), (x + width, y + bar_height), self.colors.PROGRESS_BG, -1)
        fg = self.colors.PROGRESS_FG if confidence >= threshold else self.colors.FACE_WEAK
        cv2.rectangle(
            frame,
            (x, y), (x + int(width * min(max(confidence, 0.0), 1.0)), y + bar_height),
            fg, -1
        )
        tx = x + int(width * threshold)
        cv2.line(frame, (tx, y - 2), (tx, y + bar_height + 2), (255, 255, 255), 1)
        cv2.putText(
            frame, f"{confidence * 100:.0f}%",
            (x + width + 8, y + bar_height),
            self.font, 0.45, self.colors.TEXT, 1
        )

    def draw_gate_status(
        self,
        frame: np.ndarray,
        snapshot: GateSnapshot
    ):
        """Vẽ loại chấm công, hướng dẫn phím và thông báo lỗi/thành công."""
        if not self.enabled:
            return

        h = frame.shape[0]

        if snapshot.capture_type is not None:
            color = (
                self.colors.CHECK_IN
                if snapshot.capture_type is CaptureType.CHECK_IN
                else self.colors.CHECK_OUT
            )
            cv2.putText(frame, snapshot.capture_type.label, (10, 55), self.font, 0.9, color, 2)

        cv2.putText(
            frame, STATE_LABELS.get(snapshot.state, ""),
            (10, h - 40),
            self.font, 0.5, self.colors.TEXT, 1
        )

        if snapshot.failure is not None:
            text = FAILURE_HINTS.get(snapshot.failure) or _ascii(snapshot.message or "")
            cv2.putText(frame, text, (10, h - 15), self.font, 0.5, self.colors.ERROR, 1)
        elif snapshot.state is GateState.SUCCEEDED and snapshot.message:
            cv2.putText(
                frame, _ascii(snapshot.message),
                (10, h - 15), self.font, 0.5, self.colors.CHECK_IN, 1
            )

    def draw_record(
        self,
        frame: np.ndarray,
        record: Optional[AttendanceRecord],
        position: Optional[Tuple[int, int]] = None
    ):
        """Vẽ tóm tắt bản ghi hôm nay ở góc phải trên."""
        if not self.enabled:
            return

        if position is None:
            position = (frame.shape[1] - 230, 20)
        x, y = position

        if record is None:
            lines = ["Hom nay: chua cham cong"]
        else:
            lines = [
                f"Status: {record.status.value if record.status else 'pending'}",
                f"In:  {_short_time(record.check_in.time if record.check_in else None)}",
                f"Out: {_short_time(record.check_out.time if record.check_out else None)}",
            ]
            if record.hours_worked is not None:
                lines.append(f"Hours: {record.hours_worked:.2f}")

        for i, line in enumerate(lines):
            cv2.putText(frame, line, (x, y + i * 18), self.font, 0.45, self.colors.TEXT, 1)

    def placeholder(self, message: str, size: Tuple[int, int] = (640, 480)) -> np.ndarray:
        """Frame thay thế khi không có camera."""
        w, h = size
        img = np.zeros((h, w, 3), dtype=np.uint8)
        img[:] = (30, 30, 30)
        text_size, _ = cv2.getTextSize(message, self.font, 0.8, 2)
        x = max(10, (w - text_size[0]) // 2)
        cv2.putText(img, message, (x, h // 2), self.font, 0.8, self.colors.TEXT, 2, cv2.LINE_AA)
        return img

    def show(self, window_name: str, frame: np.ndarray) -> int:
        """
        Hiển thị frame và trả về phím nhấn.

        Returns:
            Mã phím nhấn hoặc -1 nếu không có
        """
        if not self.enabled:
            return -1

        cv2.imshow(window_name, frame)
        return cv2.waitKey(1) & 0xFF

    def destroy_windows(self):
        """Đóng tất cả cửa sổ."""
        if self.enabled:
            cv2.destroyAllWindows()


def _ascii(text: str) -> str:
    return text.encode("ascii", "ignore").decode("ascii")


def _short_time(value: Optional[str]) -> str:
    """ISO timestamp -> HH:MM (giữ nguyên nếu không parse được)."""
    if not value:
        return "--:--"
    text = str(value)
    if "T" in text:
        return text.split("T", 1)[1][:5]
    return text[:5]
