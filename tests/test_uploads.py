import io
import os
import re

import pytest

from conftest import submit, uploaded_names
from quote_intake.core.config import settings
from quote_intake.core.errors import ApiError
from quote_intake.models.attachment import Attachment
from quote_intake.storage.uploads import (
    check_declared_size,
    max_request_bytes,
    new_stored_filename,
    resolve_stored_path,
    store_uploads,
)

STORED_NAME = re.compile(r"^[0-9a-f]{32}(\.[a-z0-9]+)?$")


def _files(client, headers, quote_id):
    return client.get(f"/api/admin/quotes/{quote_id}", headers=headers).json()["files"]


def test_files_stored_under_random_names_keeping_lowercase_extension(client, auth_headers, db):
    resp = submit(client, files=[
        ("files", ("X-Ray.JPG", b"jpeg-bytes", "image/jpeg")),
        ("files", ("report.final.PDF", b"%PDF-1.4", "application/pdf")),
        ("files", ("README", b"plain", "text/plain")),
    ])
    assert resp.status_code == 200
    quote_id = resp.json()["id"]

    names = uploaded_names()
    assert len(names) == 3
    assert all(STORED_NAME.match(n) for n in names)
    assert sorted(os.path.splitext(n)[1] for n in names) == ["", ".jpg", ".pdf"]

    rows = db.query(Attachment).filter(Attachment.quote_id == quote_id).order_by(Attachment.id).all()
    assert [r.original_name for r in rows] == ["X-Ray.JPG", "report.final.PDF", "README"]
    assert [r.size for r in rows] == [10, 8, 5]
    assert sorted(r.path for r in rows) == names

    listed = _files(client, auth_headers, quote_id)
    assert [f["original_name"] for f in listed] == [r.original_name for r in rows]
    assert all(set(f) == {"id", "original_name", "mime_type", "size"} for f in listed)


def test_oversized_file_rejects_whole_submission(client, auth_headers):
    big = b"\0" * (15 * 1024 * 1024)
    resp = submit(
        client,
        consent="false",
        files=[("files", ("scan.png", big, "image/png"))],
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "File too large"}
    assert uploaded_names() == []
    assert client.get("/api/admin/quotes", headers=auth_headers).json() == []


def test_oversized_body_refused_before_parsing(client, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_FILES", 1)
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 10)

    def must_not_run(uploads):
        raise AssertionError("form was parsed")

    monkeypatch.setattr("quote_intake.api.routes.quotes.store_uploads", must_not_run)

    resp = submit(client, files=[("files", ("huge.bin", b"x" * (200 * 1024), "application/octet-stream"))])
    assert resp.status_code == 400
    assert resp.json() == {"error": "File too large"}
    assert uploaded_names() == []
    assert client.get("/api/admin/quotes", headers=auth_headers).json() == []


def test_declared_size_check():
    limit = max_request_bytes()
    check_declared_size(None)
    check_declared_size("garbage")
    check_declared_size(str(limit))
    with pytest.raises(ApiError) as info:
        check_declared_size(str(limit + 1))
    assert info.value.message == "File too large"


def test_size_limit_checked_before_anything_is_written(client, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 10)
    resp = submit(client, files=[
        ("files", ("ok.txt", b"small", "text/plain")),
        ("files", ("too-big.txt", b"x" * 11, "text/plain")),
    ])
    assert resp.status_code == 400
    assert uploaded_names() == []


def test_file_exactly_at_limit_is_accepted(client, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 10)
    resp = submit(client, files=[("files", ("edge.txt", b"x" * 10, "text/plain"))])
    assert resp.status_code == 200
    assert len(uploaded_names()) == 1


def test_more_than_ten_files_rejected(client, auth_headers):
    files = [("files", (f"f{n}.txt", b"data", "text/plain")) for n in range(11)]
    resp = submit(client, files=files)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Too many files"}
    assert uploaded_names() == []
    assert client.get("/api/admin/quotes", headers=auth_headers).json() == []


def test_ten_files_accepted(client, auth_headers):
    files = [("files", (f"f{n}.txt", b"data", "text/plain")) for n in range(10)]
    resp = submit(client, files=files)
    assert resp.status_code == 200
    assert len(_files(client, auth_headers, resp.json()["id"])) == 10


def test_file_under_other_field_name_rejected(client):
    resp = submit(client, files=[("avatar", ("me.png", b"png", "image/png"))])
    assert resp.status_code == 400
    assert uploaded_names() == []


def test_invalid_fields_leave_uploaded_files_behind(client, auth_headers):
    resp = submit(client, name="J", files=[("files", ("x.png", b"png", "image/png"))])
    assert resp.status_code == 400
    # files are written before field validation and are not cleaned up
    assert len(uploaded_names()) == 1
    assert client.get("/api/admin/quotes", headers=auth_headers).json() == []


def test_download_missing_row_and_missing_file_look_the_same(client, auth_headers):
    quote_id = submit(client, files=[("files", ("x.txt", b"abc", "text/plain"))]).json()["id"]
    file_id = _files(client, auth_headers, quote_id)[0]["id"]

    os.remove(os.path.join(settings.UPLOAD_DIR, uploaded_names()[0]))

    missing_file = client.get(f"/api/admin/files/{file_id}", headers=auth_headers)
    missing_row = client.get("/api/admin/files/99999", headers=auth_headers)
    for resp in (missing_file, missing_row):
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not found"}


def test_download_guesses_type_from_original_name(client, auth_headers, db):
    quote_id = submit(client).json()["id"]
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    stored = new_stored_filename("Résumé (1).pdf")
    with open(os.path.join(settings.UPLOAD_DIR, stored), "wb") as fh:
        fh.write(b"%PDF-1.7")
    row = Attachment(quote_id=quote_id, original_name="Résumé (1).pdf", mime_type=None, size=8, path=stored)
    db.add(row)
    db.commit()

    resp = client.get(f"/api/admin/files/{row.id}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.headers["content-disposition"] == 'inline; filename="R%C3%A9sum%C3%A9%20(1).pdf"'
    assert resp.content == b"%PDF-1.7"


def test_download_falls_back_to_octet_stream(client, auth_headers, db):
    quote_id = submit(client).json()["id"]
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    stored = new_stored_filename("blob")
    with open(os.path.join(settings.UPLOAD_DIR, stored), "wb") as fh:
        fh.write(b"\x00\x01")
    row = Attachment(quote_id=quote_id, original_name="blob", mime_type=None, size=2, path=stored)
    db.add(row)
    db.commit()

    resp = client.get(f"/api/admin/files/{row.id}", headers=auth_headers)
    assert resp.headers["content-type"] == "application/octet-stream"


def test_stored_path_cannot_escape_upload_dir():
    assert resolve_stored_path("../secrets.txt") is None
    assert resolve_stored_path("/etc/passwd") is None
    assert resolve_stored_path("") is None
    assert resolve_stored_path("abc.png") == os.path.join(os.path.abspath(settings.UPLOAD_DIR), "abc.png")


def test_blank_file_parts_are_ignored():
    from starlette.datastructures import UploadFile

    blank = UploadFile(file=io.BytesIO(b""), filename="")
    assert store_uploads([blank]) == []
    assert uploaded_names() == []


def test_submissions_are_rate_limited_per_client(client, monkeypatch):
    monkeypatch.setattr(settings, "QUOTE_RATE_LIMIT", 2)
    assert submit(client).status_code == 200
    assert submit(client).status_code == 200

    resp = submit(client)
    assert resp.status_code == 429
    assert resp.json() == {"error": "Too many requests"}
    # other routes are not throttled
    assert client.get("/api/health").status_code == 200
