# facecheck/api/client.py
"""
Attendance API client (requests).

Endpoints:
    GET    /api/attendance/me?startDate=YYYY-MM-DD&endDate=YYYY-MM-DD
    POST   /api/attendance/mark      {faceEmbedding, confidence, type}
    POST   /api/users/face           {faceEmbedding, confidence}
    DELETE /api/users/face/<faceId>
    POST   /api/auth/refresh-token   {refreshToken}

Usage:
    client = AttendanceApiClient("http://localhost:5000", token="...")
    records = client.fetch_attendance(today, today)
    ack = SubmissionClient(client).submit(descriptor, 0.93, CaptureType.CHECK_IN)
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import requests

from ..core.errors import SubmissionNetworkError, SubmissionRejected
from .models import AttendanceRecord, CaptureType, SubmissionAck

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Failed to record attendance"


class AttendanceApiClient:
    """HTTP client cho Attendance API, xác thực bằng bearer token."""

    def __init__(
        self,
        base_url: str,
        token: str = "",
        refresh_token: str = "",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.refresh_token = refresh_token
        self.timeout = timeout
        self.session = session or requests.Session()

    # ------------------------------------------------------------------
    # Low-level
    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(
                method,
                f"{self.base_url}{path}",
                headers=self._headers(),
                timeout=self.timeout,
                **kwargs
            )
        except requests.RequestException as e:
            logger.warning(f"🌐 {method} {path} lỗi mạng: {e}")
            raise SubmissionNetworkError(GENERIC_ERROR) from e

    def _request(self, method: str, path: str, **kwargs) -> Any:
        """
        Gửi request, tự refresh token một lần khi gặp 401.

        Raises:
            SubmissionNetworkError: lỗi kết nối / timeout / 5xx không có JSON
            SubmissionRejected: server trả lỗi kèm message
        """
        response = self._send(method, path, **kwargs)

        if response.status_code == 401 and self.refresh_token:
            if self.refresh_access_token():
                response = self._send(method, path, **kwargs)

        return self._parse(response, method, path)

    @staticmethod
    def _json(response: requests.Response):
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    def _parse(self, response: requests.Response, method: str, path: str) -> Any:
        body = self._json(response)
        if response.ok:
            return body

        message = body.get("message") if isinstance(body, dict) else None
        logger.warning(f"🌐 {method} {path} -> {response.status_code}: {message or '(no message)'}")
        if message:
            raise SubmissionRejected(message, status_code=response.status_code)
        if response.status_code >= 500:
            raise SubmissionNetworkError(GENERIC_ERROR)
        raise SubmissionRejected(GENERIC_ERROR, status_code=response.status_code)

    def refresh_access_token(self) -> bool:
        """
        Đổi refresh token lấy access token mới.

        Returns:
            True nếu lấy được token mới
        """
        try:
            response = self.session.post(
                f"{self.base_url}/api/auth/refresh-token",
                json={"refreshToken": self.refresh_token},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Refresh token lỗi mạng: {e}")
            return False

        body = self._json(response)
        token = body.get("token") if response.ok and isinstance(body, dict) else None
        if not token:
            logger.warning("Refresh token thất bại, cần đăng nhập lại")
            return False

        self.token = token
        logger.info("🔑 Đã làm mới access token")
        return True

    # ------------------------------------------------------------------
    # Endpoints
    def fetch_attendance(self, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        """
        Lấy bản ghi chấm công của user hiện tại trong khoảng ngày.
        Chấp nhận cả mảng JSON lẫn envelope {"records": [...], "pagination": ...}.
        """
        body = self._request(
            "GET", "/api/attendance/me",
            params={
                "startDate": start_date.isoformat(),
                "endDate": end_date.isoformat(),
            },
        )
        if isinstance(body, dict):
            body = body.get("records")
        if not isinstance(body, list):
            return []
        return [item for item in body if isinstance(item, dict)]

    def mark_attendance(
        self,
        descriptor: Sequence[float],
        confidence: float,
        capture_type: CaptureType,
    ) -> Dict[str, Any]:
        """POST /api/attendance/mark."""
        body = self._request(
            "POST", "/api/attendance/mark",
            json={
                "faceEmbedding": [float(v) for v in descriptor],
                "confidence": float(confidence),
                "type": capture_type.value,
            },
        )
        return body if isinstance(body, dict) else {}

    def register_face(self, descriptor: Sequence[float], confidence: float) -> Dict[str, Any]:
        """POST /api/users/face - đăng ký khuôn mặt cho tài khoản."""
        body = self._request(
            "POST", "/api/users/face",
            json={
                "faceEmbedding": [float(v) for v in descriptor],
                "confidence": float(confidence),
            },
        )
        return body if isinstance(body, dict) else {}

    def delete_face(self, face_id: str) -> Dict[str, Any]:
        """DELETE /api/users/face/<faceId>."""
        body = self._request("DELETE", f"/api/users/face/{face_id}")
        return body if isinstance(body, dict) else {}


class SubmissionClient:
    """
    Gửi descriptor lên server và trả về SubmissionAck.

    `type` gửi đi chỉ mang tính đề xuất; server quyết định loại thực tế,
    nên caller phải dựa vào bản ghi trả về chứ không dựa vào request.
    """

    def __init__(self, api: AttendanceApiClient):
        self.api = api

    def submit(
        self,
        descriptor: Sequence[float],
        confidence: float,
        capture_type: CaptureType,
    ) -> SubmissionAck:
        body = self.api.mark_attendance(descriptor, confidence, capture_type)
        if not body:
            raise SubmissionNetworkError("No response data received")

        attendance = body.get("attendance")
        record = AttendanceRecord.from_dict(attendance) if isinstance(attendance, dict) else None
        message = body.get("message") or "Attendance marked successfully"
        return SubmissionAck(message=message, record=record)


def create_api_client(settings) -> AttendanceApiClient:
    """Factory tạo client từ Settings."""
    return AttendanceApiClient(
        base_url=settings.api_base_url,
        token=settings.API_TOKEN,
        refresh_token=settings.REFRESH_TOKEN,
        timeout=settings.REQUEST_TIMEOUT,
    )
