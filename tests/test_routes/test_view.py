import re

from dataroom.routes import view
from dataroom.storage import backend


def _code_from_notice(html: str) -> str:
    m = re.search(r"Verification code sent to [^:]+: (\d{6})", html)
    assert m, "verification notice missing"
    return m.group(1)


# ---------- 1. RESOLUTION ----------
def test_unknown_link_is_not_found(client):
    res = client.get("/view/nosuchtoken")
    assert res.status_code == 404
    assert "Link Invalid" in res.text


def test_open_document_goes_straight_to_download(client, insert_document):
    insert_document(share_link="open000001")
    res = client.get("/view/open000001")
    assert res.status_code == 200
    assert "Download File" in res.text

    res = client.get("/view/open000001/download")
    assert res.status_code == 200
    assert res.content == b"%PDF-1.4 fake"
    assert res.headers["content-type"].startswith("application/pdf")
    assert 'filename="contract.pdf"' in res.headers["content-disposition"]


def test_expired_link_has_no_path_to_content(client, insert_document):
    # password: null, expires_at: 2020-01-01, no email verification
    insert_document(share_link="old0000001", expires_at="2020-01-01")
    res = client.get("/view/old0000001")
    assert res.status_code == 410
    assert "This link has expired." in res.text

    assert client.get("/view/old0000001/download").status_code == 410
    assert client.post("/view/old0000001/password", data={"password": "x"}).status_code == 410


def test_expired_even_with_every_gate(client, insert_document):
    insert_document(share_link="old0000002", expires_at="2020-01-01", password="secret", email_verification=True)
    assert client.get("/view/old0000002").status_code == 410


# ---------- 2. PASSWORD GATE ----------
def test_password_scenario(client, insert_document):
    # password: "secret", expires_at: null, email_verification: false
    insert_document(share_link="pw00000001", password="secret", allow_download=True)

    res = client.get("/view/pw00000001")
    assert "This file is password protected" in res.text
    assert client.get("/view/pw00000001/download").status_code == 403

    for _ in range(10):  # no lockout
        res = client.post("/view/pw00000001/password", data={"password": "wrong"})
        assert res.status_code == 403
        assert "Incorrect password" in res.text

    res = client.post("/view/pw00000001/password", data={"password": "secret"})
    assert res.status_code == 200
    assert "Download File" in res.text

    assert client.get("/view/pw00000001/download").status_code == 200


def test_password_unlock_without_downloads(client, insert_document):
    insert_document(share_link="pw00000002", password="secret", allow_download=False)
    client.post("/view/pw00000002/password", data={"password": "secret"})

    res = client.get("/view/pw00000002")
    assert "Downloads are disabled for this file." in res.text
    assert "Download File" not in res.text
    assert client.get("/view/pw00000002/download").status_code == 403


def test_unlock_is_per_visitor(client, insert_document):
    from fastapi.testclient import TestClient
    from dataroom.main import app

    insert_document(share_link="pw00000003", password="secret")
    client.post("/view/pw00000003/password", data={"password": "secret"})
    assert client.get("/view/pw00000003/download").status_code == 200

    stranger = TestClient(app)
    assert stranger.get("/view/pw00000003/download").status_code == 403


# ---------- 3. EMAIL GATE ----------
def test_allow_listed_email_flow(client, insert_document):
    insert_document(share_link="em00000001", email_verification=True, allowed_email="alice@example.com")

    res = client.get("/view/em00000001")
    assert "Email Verification Required" in res.text

    res = client.post("/view/em00000001/email", data={"email": "mallory@example.com"})
    assert res.status_code == 403
    assert "not shared with this email" in res.text
    assert "Email Verification Required" in res.text

    res = client.post("/view/em00000001/email", data={"email": "alice@example.com"})
    assert res.status_code == 200
    assert "Code sent to alice@example.com" in res.text
    code = _code_from_notice(res.text)

    wrong = "000000" if code != "000000" else "111111"
    res = client.post("/view/em00000001/code", data={"code": wrong})
    assert res.status_code == 403
    assert "Invalid code" in res.text

    res = client.post("/view/em00000001/code", data={"code": code})
    assert res.status_code == 200
    assert "Download File" in res.text


def test_change_email_discards_code(client, insert_document):
    insert_document(share_link="em00000002", email_verification=True)
    res = client.post("/view/em00000002/email", data={"email": "bob@example.com"})
    code = _code_from_notice(res.text)

    res = client.post("/view/em00000002/change-email")
    assert "Email Verification Required" in res.text

    # the old code no longer applies: the code form is not active
    res = client.post("/view/em00000002/code", data={"code": code})
    assert "Email Verification Required" in res.text
    assert client.get("/view/em00000002/download").status_code == 403


def test_password_then_email(client, insert_document):
    insert_document(share_link="both000001", password="secret", email_verification=True)

    res = client.get("/view/both000001")
    assert "This file is password protected" in res.text
    assert "Email Verification Required" not in res.text

    res = client.post("/view/both000001/password", data={"password": "secret"})
    assert "Email Verification Required" in res.text

    res = client.post("/view/both000001/email", data={"email": "carol@example.com"})
    code = _code_from_notice(res.text)
    res = client.post("/view/both000001/code", data={"code": code})
    assert "Download File" in res.text


# ---------- 4. DELIVERY ----------
def test_download_failure_is_retryable(client, insert_document, monkeypatch):
    insert_document(share_link="dl00000001")

    def broken_get(key):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(backend, "get_object", broken_get)
    res = client.get("/view/dl00000001/download")
    assert res.status_code == 502
    assert "Failed to download file." in res.text

    # still unlocked, the button is offered again
    assert "Download File" in client.get("/view/dl00000001").text


def test_screenshot_protection_overlay(client, insert_document):
    insert_document(share_link="ss00000001", screenshot_protection=True)
    res = client.get("/view/ss00000001")
    assert "Protected View" in res.text
    assert 'oncontextmenu="return false"' in res.text

    insert_document(share_link="ss00000002")
    res = client.get("/view/ss00000002")
    assert "Protected View" not in res.text


def test_unlock_survives_activity_log_outage(client, insert_document, broken_activity_log):
    insert_document(share_link="pw00000004", password="secret")
    res = client.post("/view/pw00000004/password", data={"password": "secret"})
    assert res.status_code == 200
    assert "Download File" in res.text
    assert client.get("/view/pw00000004/download").status_code == 200


def test_download_filename_with_quotes_and_backslash(client, insert_document):
    insert_document(share_link="qt00000001", name='say "hi"\\.pdf')
    res = client.get("/view/qt00000001/download")
    assert res.status_code == 200
    assert 'filename="say \'hi\'_.pdf"' in res.headers["content-disposition"]
    assert "filename*=UTF-8''say%20%22hi%22%5C.pdf" in res.headers["content-disposition"]


def test_oldest_remembered_link_is_dropped(client, insert_document):
    insert_document(share_link="pwcap00001", password="secret")
    client.post("/view/pwcap00001/password", data={"password": "secret"})
    assert client.get("/view/pwcap00001/download").status_code == 200

    for i in range(view.MAX_REMEMBERED_LINKS):
        insert_document(share_link=f"open{i:06d}")
        client.get(f"/view/open{i:06d}")

    # the password link fell out of the session and is locked again
    assert client.get("/view/pwcap00001/download").status_code == 403
    assert client.get(f"/view/open{view.MAX_REMEMBERED_LINKS - 1:06d}/download").status_code == 200
