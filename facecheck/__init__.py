# facecheck package
"""
FaceCheck - Chấm công bằng khuôn mặt (client).

Structure:
    facecheck/
    ├── core/                     # Core infrastructure
    │   ├── settings.py           # Configuration
    │   ├── errors.py             # Exception taxonomy
    │   ├── camera.py             # Camera Session Manager
    │   ├── tflite_helper.py      # TFLite interpreter helper
    │   └── model_factory.py      # Load face detection model
    ├── detect/                   # Face detection
    │   ├── detect.py             # BlazeFace (TFLite)
    │   └── presence.py           # Presence Detector (vòng lặp 10 Hz / 2 Hz)
    ├── descriptor/               # Descriptor Extractor
    │   └── descriptor.py
    ├── api/                      # Attendance API client (requests)
    │   ├── models.py
    │   └── client.py
    ├── processing/               # Processing modules
    │   ├── attendance.py         # Attendance Session View Model
    │   ├── gate.py               # Capture Gate state machine
    │   ├── enrollment.py         # Đăng ký khuôn mặt
    │   └── display.py            # UI/Overlay handler
    └── main.py                   # Main application

Usage:
    from facecheck import load_face_model, CaptureGate

    model = load_face_model()
"""

from .core.model_factory import load_face_model
from .core.settings import settings
from .detect import BlazeFaceDetector, PresenceDetector
from .processing import AttendanceSession, CaptureGate, GateState

__all__ = [
    'settings',
    'load_face_model',
    'BlazeFaceDetector',
    'PresenceDetector',
    'AttendanceSession',
    'CaptureGate',
    'GateState',
]
