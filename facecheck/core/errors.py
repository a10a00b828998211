# facecheck/core/errors.py
"""
Các lỗi của pipeline chấm công bằng khuôn mặt.

Mỗi exception tương ứng đúng một FailureReason để Capture Gate
có thể hiển thị một thông báo duy nhất cho người dùng.
"""
from enum import Enum
from typing import Optional


class FailureReason(Enum):
    """Lý do thất bại của một lần chụp."""
    CAMERA_UNAVAILABLE = "camera_unavailable"
    MODEL_LOAD_ERROR = "model_load_error"
    NO_FACE_AT_CAPTURE = "no_face_at_capture"
    SUBMISSION_NETWORK_ERROR = "submission_network_error"
    SUBMISSION_REJECTED = "submission_rejected"
    CAPTURE_NOT_ALLOWED = "capture_not_allowed"


class CaptureError(Exception):
    """Base exception cho toàn bộ capture pipeline."""

    reason: FailureReason = FailureReason.CAPTURE_NOT_ALLOWED
    default_message = "Capture failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class CameraUnavailable(CaptureError):
    """Không mở được camera (bị từ chối quyền hoặc không có thiết bị)."""
    reason = FailureReason.CAMERA_UNAVAILABLE
    default_message = (
        "Could not access camera. Please ensure camera permissions are granted."
    )


class ModelLoadError(CaptureError):
    """Không load được model nhận diện khuôn mặt."""
    reason = FailureReason.MODEL_LOAD_ERROR
    default_message = "Failed to load face detection model"


class NoFaceAtCapture(CaptureError):
    """Không có khuôn mặt nào tại thời điểm chụp."""
    reason = FailureReason.NO_FACE_AT_CAPTURE
    default_message = "No face detected during capture"


class CaptureNotAllowed(CaptureError):
    """Loại chấm công yêu cầu không hợp lệ với bản ghi hôm nay."""
    reason = FailureReason.CAPTURE_NOT_ALLOWED
    default_message = "Attendance already completed for today"


class SubmissionError(CaptureError):
    """Base cho lỗi khi gửi lên Attendance API."""
    reason = FailureReason.SUBMISSION_NETWORK_ERROR
    default_message = "Failed to record attendance"


class SubmissionNetworkError(SubmissionError):
    """Lỗi mạng: timeout, mất kết nối, server không trả JSON."""
    reason = FailureReason.SUBMISSION_NETWORK_ERROR


class SubmissionRejected(SubmissionError):
    """Server trả về lỗi có message (vd: đã chấm công rồi)."""
    reason = FailureReason.SUBMISSION_REJECTED

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
