"""
Core modules - Infrastructure & Configuration.

- settings: Unified configuration
- errors: Exception taxonomy
- camera: Camera Session Manager
- tflite_helper: TFLite interpreter helper
- model_factory: Load face detection model
"""

from .settings import settings, Settings
from .errors import (
    FailureReason, CaptureError, CameraUnavailable, ModelLoadError,
    NoFaceAtCapture, CaptureNotAllowed, SubmissionError,
    SubmissionNetworkError, SubmissionRejected,
)
from .camera import CameraManager, CameraConfig, CameraStream, create_camera
from .tflite_helper import get_interpreter
from .model_factory import load_face_model

__all__ = [
    'settings',
    'Settings',
    'FailureReason',
    'CaptureError',
    'CameraUnavailable',
    'ModelLoadError',
    'NoFaceAtCapture',
    'CaptureNotAllowed',
    'SubmissionError',
    'SubmissionNetworkError',
    'SubmissionRejected',
    'CameraManager',
    'CameraConfig',
    'CameraStream',
    'create_camera',
    'get_interpreter',
    'load_face_model',
]
