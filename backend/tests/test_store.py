from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from excel_analytics.policy import Role
from excel_analytics.schemas import Account, UploadRecord
from excel_analytics.store import DuplicateUsername, MemoryStore


def _record(owner, minutes_ago):
    return UploadRecord(
        owner=owner,
        filename=f"{owner}-{minutes_ago}.xlsx",
        uploaded_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
        rows=[{"a": 1}],
        summary={"a": {"count": 1, "sum": 1, "average": 1}},
    )


def test_uploads_listed_newest_first_per_owner():
    store = MemoryStore()
    for rec in (_record("u1", 30), _record("u1", 5), _record("u2", 1), _record("u1", 60)):
        store.save_upload(rec)
    names = [u.filename for u in store.list_uploads_by_owner("u1")]
    assert names == ["u1-5.xlsx", "u1-30.xlsx", "u1-60.xlsx"]
    assert len(store.list_uploads()) == 4


def test_upload_record_is_frozen():
    rec = UploadRecord.create(owner="u1", filename="f.xlsx", rows=[], summary={})
    with pytest.raises(ValidationError):
        rec.filename = "other.xlsx"
    assert rec.uploaded_at.tzinfo is not None


def test_duplicate_username_rejected():
    store = MemoryStore()
    store.save_account(Account(username="bob", password_hash="x"))
    with pytest.raises(DuplicateUsername):
        store.save_account(Account(username="bob", password_hash="y"))


def test_role_update_and_delete():
    store = MemoryStore()
    acc_id = store.save_account(Account(username="bob", password_hash="x"))
    assert store.get_account(acc_id).role is Role.USER
    assert store.update_account_role(acc_id, Role.ADMIN)
    assert store.find_account_by_username("bob").role is Role.ADMIN
    assert not store.update_account_role("missing", Role.ADMIN)
    assert store.delete_account(acc_id)
    assert not store.delete_account(acc_id)
    assert store.list_accounts() == []
