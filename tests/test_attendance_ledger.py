import pytest
from sqlalchemy.exc import OperationalError

from sitepay_api.common.errors import (
    AlreadyFinalizedError,
    InvalidInputError,
    StorageError,
)
from sitepay_api.common.tenant import Tenant
from sitepay_api.extensions import db
from sitepay_api.models.attendance import AttendanceRecord
from sitepay_api.services import attendance_ledger

from factories import company, employee


def test_save_sets_calendar_days_and_draft(app):
    e = employee(company())
    res = attendance_ledger.save_attendance("2024-02", [{"employee_id": e.id, "days_present": 20}])
    assert len(res.saved) == 1 and not res.rejected
    rec = attendance_ledger.get_record(e.id, "2024-02")
    assert rec.total_days_in_month == 29
    assert rec.status == "DRAFT"


def test_save_upserts_one_row(app):
    e = employee(company())
    attendance_ledger.save_attendance("2025-06", [{"employee_id": e.id, "days_present": 10}])
    attendance_ledger.save_attendance("2025-06", [{"employee_id": e.id, "days_present": 12, "remarks": "late entry"}])
    rows = AttendanceRecord.query.filter_by(employee_id=e.id, month="2025-06").all()
    assert len(rows) == 1
    assert rows[0].days_present == 12
    assert rows[0].remarks == "late entry"


def test_malformed_month_rejects_whole_call(app):
    e = employee(company())
    with pytest.raises(InvalidInputError):
        attendance_ledger.save_attendance("June 2025", [{"employee_id": e.id, "days_present": 10}])


def test_bad_records_rejected_rest_saved(app):
    c = company()
    good = employee(c, "E1")
    res = attendance_ledger.save_attendance("2025-06", [
        {"employee_id": good.id, "days_present": 25},
        {"employee_id": 9999, "days_present": 10},
        {"employee_id": good.id, "days_present": -1},
        {"employee_id": good.id, "days_present": "ten"},
        {"employee_id": good.id},
    ])
    assert len(res.saved) == 1
    assert [r["index"] for r in res.rejected] == [1, 2, 3, 4]
    assert all(r["code"] == "INVALID_INPUT" for r in res.rejected)
    assert attendance_ledger.get_record(good.id, "2025-06").days_present == 25


def test_over_month_length_saved_with_warning(app):
    e = employee(company())
    res = attendance_ledger.save_attendance("2025-06", [{"employee_id": e.id, "days_present": 32}])
    assert len(res.saved) == 1
    assert res.warnings and res.warnings[0]["employee_id"] == e.id
    assert attendance_ledger.get_record(e.id, "2025-06").days_present == 32


def test_finalize_all_drafts(app):
    c = company()
    a, b = employee(c, "E1"), employee(c, "E2")
    attendance_ledger.save_attendance("2025-06", [
        {"employee_id": a.id, "days_present": 30},
        {"employee_id": b.id, "days_present": 15},
    ])
    assert attendance_ledger.finalize_month("2025-06") == 2
    rows = attendance_ledger.get_by_month("2025-06")
    assert {r.status for r in rows} == {"FINALIZED"}
    assert all(r.finalized_at is not None for r in rows)


def test_finalize_twice_raises(app):
    e = employee(company())
    attendance_ledger.save_attendance("2025-06", [{"employee_id": e.id, "days_present": 30}])
    attendance_ledger.finalize_month("2025-06")
    with pytest.raises(AlreadyFinalizedError):
        attendance_ledger.finalize_month("2025-06")


def test_finalize_empty_month_raises(app):
    with pytest.raises(AlreadyFinalizedError):
        attendance_ledger.finalize_month("2030-01")


def test_finalized_row_is_locked(app):
    e = employee(company())
    attendance_ledger.save_attendance("2025-06", [{"employee_id": e.id, "days_present": 30}])
    attendance_ledger.finalize_month("2025-06")
    res = attendance_ledger.save_attendance("2025-06", [{"employee_id": e.id, "days_present": 5}])
    assert not res.saved
    assert res.rejected[0]["code"] == "ATTENDANCE_LOCKED"
    assert attendance_ledger.get_record(e.id, "2025-06").days_present == 30


def test_finalize_rolls_back_on_commit_failure(app, monkeypatch):
    c = company()
    a, b = employee(c, "E1"), employee(c, "E2")
    attendance_ledger.save_attendance("2025-06", [
        {"employee_id": a.id, "days_present": 30},
        {"employee_id": b.id, "days_present": 15},
    ])

    def boom():
        raise OperationalError("COMMIT", {}, Exception("connection lost"))

    monkeypatch.setattr(db.session, "commit", boom)
    with pytest.raises(StorageError) as ei:
        attendance_ledger.finalize_month("2025-06")
    assert ei.value.connectivity is True
    monkeypatch.undo()

    rows = attendance_ledger.get_by_month("2025-06")
    assert {r.status for r in rows} == {"DRAFT"}
    assert all(r.finalized_at is None for r in rows)


def test_get_by_employee_range(app):
    e = employee(company())
    for m in ("2025-01", "2025-02", "2025-03", "2025-04"):
        attendance_ledger.save_attendance(m, [{"employee_id": e.id, "days_present": 20}])
    rows = attendance_ledger.get_by_employee(e.id, "2025-02", "2025-03")
    assert [r.month for r in rows] == ["2025-03", "2025-02"]


def test_month_summary(app):
    c = company()
    a, b = employee(c, "E1"), employee(c, "E2")
    attendance_ledger.save_attendance("2025-06", [
        {"employee_id": a.id, "days_present": 30},
        {"employee_id": b.id, "days_present": 12},
    ])
    s = attendance_ledger.month_summary("2025-06")
    assert s["records"] == 2 and s["draft"] == 2 and s["finalized"] == 0
    assert s["total_days_present"] == 42
    assert s["is_finalized"] is False
    attendance_ledger.finalize_month("2025-06")
    assert attendance_ledger.month_summary("2025-06")["is_finalized"] is True


def test_finalize_for_one_company_leaves_others_draft(app):
    c, other = company("C1"), company("C2", "Other Co")
    mine, theirs = employee(c, "E1"), employee(other, "X1")
    attendance_ledger.save_attendance("2025-06", [
        {"employee_id": mine.id, "days_present": 30},
        {"employee_id": theirs.id, "days_present": 20},
    ])

    assert attendance_ledger.finalize_month("2025-06", Tenant(c.id)) == 1
    assert attendance_ledger.get_record(mine.id, "2025-06").status == "FINALIZED"
    assert attendance_ledger.get_record(theirs.id, "2025-06").status == "DRAFT"
    with pytest.raises(AlreadyFinalizedError):
        attendance_ledger.finalize_month("2025-06", Tenant(c.id))


def test_save_rejects_other_company_employee(app):
    c, other = company("C1"), company("C2", "Other Co")
    theirs = employee(other, "X1")
    res = attendance_ledger.save_attendance("2025-06", [{"employee_id": theirs.id, "days_present": 5}],
                                            Tenant(c.id))
    assert not res.saved
    assert res.rejected[0]["code"] == "INVALID_INPUT"
