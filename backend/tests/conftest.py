import io
import zipfile

import openpyxl
import pytest
from fastapi.testclient import TestClient

from excel_analytics import config
from excel_analytics.main import create_app
from excel_analytics.policy import Role
from excel_analytics.schemas import Account
from excel_analytics.security import hash_password
from excel_analytics.store import MemoryStore


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    monkeypatch.setattr(config, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def xlsx():
    """Build an .xlsx buffer; the first positional sheet is ``rows``."""
    def build(rows, extra_sheets=()):
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Data"
        for r in rows:
            ws.append(list(r))
        for name, sheet_rows in extra_sheets:
            other = wb.create_sheet(name)
            for r in sheet_rows:
                other.append(list(r))
        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()
    return build


def rewrite_sheet(data, old, new):
    """Patch the raw XML of the first worksheet in an .xlsx buffer."""
    src = zipfile.ZipFile(io.BytesIO(data))
    out = io.BytesIO()
    with zipfile.ZipFile(out, "w", zipfile.ZIP_DEFLATED) as dst:
        for item in src.infolist():
            body = src.read(item.filename)
            if item.filename == "xl/worksheets/sheet1.xml":
                assert old in body
                body = body.replace(old, new)
            dst.writestr(item, body)
    return out.getvalue()


@pytest.fixture
def store():
    s = MemoryStore()
    s.save_account(Account(username="root", password_hash=hash_password("rootpw"), role=Role.ADMIN))
    return s


@pytest.fixture
def client(store):
    return TestClient(create_app(store))


def login(client, username, password):
    resp = client.post("/api/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def admin_headers(client):
    return login(client, "root", "rootpw")


@pytest.fixture
def user_headers(client):
    resp = client.post("/api/register", json={"username": "alice", "password": "secret"})
    assert resp.status_code == 200, resp.text
    return login(client, "alice", "secret")
