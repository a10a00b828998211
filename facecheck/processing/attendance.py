# facecheck/processing/attendance.py
"""
Attendance Session View Model.

Giữ bản ghi chấm công hôm nay (do server sở hữu) và suy ra loại chấm công
hợp lệ tiếp theo. Đây là nguồn sự thật duy nhất cho loại chụp: Capture Gate
luôn hỏi ở đây, không tự chọn.

Usage:
    session = AttendanceSession(api)
    session.refresh()
    if session.capture_type is CaptureType.CHECK_OUT:
        ...
"""
import logging
import threading
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Optional

from ..api.models import AttendanceRecord, CaptureType
from ..core.errors import SubmissionError

logger = logging.getLogger(__name__)


def derive_capture_type(record: Optional[AttendanceRecord]) -> Optional[CaptureType]:
    """
    Suy ra loại chấm công tiếp theo từ bản ghi hôm nay.

    - Chưa có bản ghi / chưa check-in  -> CHECK_IN
    - Đã check-in, chưa check-out      -> CHECK_OUT
    - Đã đủ cả hai                      -> None (hết lượt hôm nay)
    """
    if record is None or not record.checked_in:
        return CaptureType.CHECK_IN
    if not record.checked_out:
        return CaptureType.CHECK_OUT
    return None


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def pick_today(records: Iterable[AttendanceRecord], today: date) -> Optional[AttendanceRecord]:
    """
    Chọn bản ghi của hôm nay. Server đã lọc theo ngày, nên nếu không có
    bản ghi nào khớp chính xác thì lấy bản ghi đầu tiên.
    """
    records = list(records)
    for record in records:
        if record.day == today:
            return record
    return records[0] if records else None


class AttendanceSession:
    """
    Bản ghi hôm nay + loại chấm công hợp lệ. Thread-safe.
    """

    def __init__(self, api, today: Callable[[], date] = _utc_today):
        """
        Args:
            api: AttendanceApiClient (hoặc object có fetch_attendance)
            today: Hàm trả về ngày hiện tại (mặc định theo UTC như server)
        """
        self.api = api
        self._today = today
        self._lock = threading.RLock()
        self._record: Optional[AttendanceRecord] = None
        self._loaded = False
        self.error: Optional[str] = None

    @property
    def record(self) -> Optional[AttendanceRecord]:
        with self._lock:
            return self._record

    @property
    def loaded(self) -> bool:
        with self._lock:
            return self._loaded

    @property
    def capture_type(self) -> Optional[CaptureType]:
        """Loại chấm công hợp lệ, tính lại mỗi lần đọc."""
        with self._lock:
            return derive_capture_type(self._record)

    def refresh(self) -> Optional[AttendanceRecord]:
        """
        Tải lại bản ghi hôm nay từ server.

        Raises:
            SubmissionError: lỗi mạng / server (error message được lưu lại)
        """
        today = self._today()
        try:
            items = self.api.fetch_attendance(today, today)
        except SubmissionError as e:
            with self._lock:
                self.error = e.message or "Failed to fetch attendance data"
            logger.warning(f"Không tải được chấm công hôm nay: {self.error}")
            raise

        record = pick_today((AttendanceRecord.from_dict(item) for item in items), today)
        self.apply_record(record)
        logger.info(
            f"📅 Hôm nay: check-in={'có' if record and record.checked_in else 'chưa'}, "
            f"check-out={'có' if record and record.checked_out else 'chưa'}"
        )
        return record

    def apply_record(self, record: Optional[AttendanceRecord]):
        """Ghi nhận bản ghi server trả về (sau refresh hoặc sau khi submit)."""
        with self._lock:
            self._record = record
            self._loaded = True
            self.error = None
