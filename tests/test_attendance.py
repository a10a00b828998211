from datetime import date

import pytest

from facecheck.api.models import AttendanceRecord, AttendanceStatus, CaptureType
from facecheck.core.errors import SubmissionNetworkError
from facecheck.processing.attendance import AttendanceSession, derive_capture_type, pick_today

from conftest import TODAY, FakeApi, record_dict


@pytest.mark.parametrize("data, expected", [
    (None, CaptureType.CHECK_IN),
    (record_dict(), CaptureType.CHECK_IN),
    (record_dict(check_in="2024-05-02T08:01:00Z"), CaptureType.CHECK_OUT),
    (record_dict(check_in="2024-05-02T08:01:00Z", check_out="2024-05-02T17:30:00Z"), None),
])
def test_derive_capture_type(data, expected):
    record = AttendanceRecord.from_dict(data) if data is not None else None
    assert derive_capture_type(record) is expected


def test_record_parsing_is_lenient():
    record = AttendanceRecord.from_dict({
        "date": "2024-05-02T00:00:00.000Z",
        "status": "LATE",
        "checkIn": {"time": "2024-05-02T09:15:00Z"},
        "checkOut": None,
        "hoursWorked": "7.5",
    })
    assert record.status is AttendanceStatus.LATE
    assert record.day == TODAY
    assert record.checked_in and not record.checked_out
    assert record.check_in.verified is None
    assert record.hours_worked == 7.5

    odd = AttendanceRecord.from_dict({"status": "on-leave", "hoursWorked": "n/a", "date": "??"})
    assert odd.status is None
    assert odd.hours_worked is None
    assert odd.day is None


def test_pick_today_prefers_exact_date():
    yesterday = AttendanceRecord.from_dict(record_dict(day="2024-05-01T00:00:00.000Z"))
    today = AttendanceRecord.from_dict(record_dict(day="2024-05-02T00:00:00.000Z"))
    assert pick_today([yesterday, today], TODAY) is today
    assert pick_today([yesterday], TODAY) is yesterday
    assert pick_today([], TODAY) is None


def test_initial_state_offers_check_in(session):
    assert session.record is None
    assert not session.loaded
    assert session.capture_type is CaptureType.CHECK_IN


def test_refresh_queries_today_and_derives_type():
    api = FakeApi([record_dict(check_in="2024-05-02T08:00:00Z")])
    session = AttendanceSession(api, today=lambda: TODAY)

    record = session.refresh()

    assert api.fetch_calls == [(TODAY, TODAY)]
    assert record.checked_in
    assert session.loaded
    assert session.capture_type is CaptureType.CHECK_OUT


def test_refresh_with_no_records_offers_check_in():
    session = AttendanceSession(FakeApi([]), today=lambda: date(2024, 1, 1))
    assert session.refresh() is None
    assert session.capture_type is CaptureType.CHECK_IN


def test_refresh_error_keeps_record_and_sets_error():
    api = FakeApi(
        [record_dict(check_in="2024-05-02T08:00:00Z")],
        SubmissionNetworkError("Failed to fetch attendance data"),
    )
    session = AttendanceSession(api, today=lambda: TODAY)
    session.refresh()

    with pytest.raises(SubmissionNetworkError):
        session.refresh()

    assert session.error == "Failed to fetch attendance data"
    assert session.capture_type is CaptureType.CHECK_OUT


def test_capture_type_recomputed_after_apply(session):
    session.apply_record(AttendanceRecord.from_dict(
        record_dict(check_in="2024-05-02T08:00:00Z", check_out="2024-05-02T17:00:00Z")
    ))
    assert session.capture_type is None

    session.apply_record(None)
    assert session.capture_type is CaptureType.CHECK_IN
