"""
Processing modules - Capture & Attendance Logic.

- attendance: Attendance Session View Model (bản ghi hôm nay, loại chấm công)
- gate: Capture Gate state machine
- enrollment: Đăng ký khuôn mặt
- display: UI/Overlay handler
"""

from .attendance import AttendanceSession, derive_capture_type, pick_today
from .gate import CaptureGate, CaptureSession, GateSnapshot, GateState
from .enrollment import FaceEnrollment
from .display import DisplayHandler

__all__ = [
    'AttendanceSession',
    'derive_capture_type',
    'pick_today',
    'CaptureGate',
    'CaptureSession',
    'GateSnapshot',
    'GateState',
    'FaceEnrollment',
    'DisplayHandler',
]
