# facecheck/api/models.py
"""
Kiểu dữ liệu trao đổi với Attendance API.

Server là nguồn sự thật cho status / hoursWorked / verified; client chỉ
đọc và hiển thị.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional


class CaptureType(Enum):
    """Loại chấm công client đề xuất."""
    CHECK_IN = "check-in"
    CHECK_OUT = "check-out"

    @property
    def label(self) -> str:
        return "CHECK-IN" if self is CaptureType.CHECK_IN else "CHECK-OUT"


class AttendanceStatus(Enum):
    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"


@dataclass(frozen=True)
class PunchInfo:
    """Thông tin một lần check-in / check-out."""
    time: Optional[str] = None
    verified: Optional[bool] = None

    @classmethod
    def from_dict(cls, data) -> Optional["PunchInfo"]:
        if not isinstance(data, dict):
            return None
        return cls(time=data.get("time") or None, verified=data.get("verified"))


@dataclass(frozen=True)
class AttendanceRecord:
    """Bản ghi chấm công một ngày do server trả về."""
    date: Optional[str] = None
    status: Optional[AttendanceStatus] = None
    check_in: Optional[PunchInfo] = None
    check_out: Optional[PunchInfo] = None
    hours_worked: Optional[float] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def checked_in(self) -> bool:
        return bool(self.check_in and self.check_in.time)

    @property
    def checked_out(self) -> bool:
        return bool(self.check_out and self.check_out.time)

    @property
    def day(self) -> Optional[date]:
        """Ngày của bản ghi (None nếu không parse được)."""
        if not self.date:
            return None
        try:
            return datetime.fromisoformat(str(self.date).replace("Z", "+00:00")).date()
        except ValueError:
            return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttendanceRecord":
        """Parse JSON từ server, bỏ qua field thiếu hoặc sai kiểu."""
        status = None
        try:
            if data.get("status"):
                status = AttendanceStatus(str(data["status"]).lower())
        except ValueError:
            status = None

        hours = data.get("hoursWorked")
        try:
            hours = float(hours) if hours is not None else None
        except (TypeError, ValueError):
            hours = None

        return cls(
            date=data.get("date"),
            status=status,
            check_in=PunchInfo.from_dict(data.get("checkIn")),
            check_out=PunchInfo.from_dict(data.get("checkOut")),
            hours_worked=hours,
            raw=dict(data),
        )


@dataclass(frozen=True)
class SubmissionAck:
    """Phản hồi thành công của POST /api/attendance/mark."""
    message: str
    record: Optional[AttendanceRecord] = None
