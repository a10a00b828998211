"""
API module - client cho Attendance API (requests).
"""

from .client import AttendanceApiClient, SubmissionClient, create_api_client
from .models import AttendanceRecord, AttendanceStatus, CaptureType, PunchInfo, SubmissionAck

__all__ = [
    'AttendanceApiClient',
    'SubmissionClient',
    'create_api_client',
    'AttendanceRecord',
    'AttendanceStatus',
    'CaptureType',
    'PunchInfo',
    'SubmissionAck',
]
