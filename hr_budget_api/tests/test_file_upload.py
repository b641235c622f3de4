from urllib.parse import quote

import pytest

from src.db.session import get_session_maker
from src.services.file_upload import FileUploadService, UploadInput, file_type_for, format_file_size

from conftest import run

PDF = "application/pdf"


def _input(data=b"%PDF-1.4 test", content_type=PDF, ref_id=None, name="memo.pdf"):
    return UploadInput(
        file_name=name, content_type=content_type, data=data,
        ref_type="PE_MOVEMENT", ref_id=ref_id, uploaded_by="E100",
    )


async def _upload(*inputs, max_file_size=None):
    async with get_session_maker()() as session:
        svc = FileUploadService(session, max_file_size=max_file_size)
        return [await svc.upload_file(i) for i in inputs]


@pytest.mark.parametrize(
    "size, expected",
    [(0, "0 B"), (1023, "1023 B"), (1024, "1.0 KB"), (1536, "1.5 KB"), (5 * 1024 * 1024, "5.00 MB")],
)
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_file_type_for():
    assert file_type_for(PDF) == "PDF"
    assert file_type_for("application/vnd.ms-excel") == "EXCEL"
    assert file_type_for("application/vnd.openxmlformats-officedocument.wordprocessingml.document") == "WORD"
    assert file_type_for("image/png") == "IMAGE"
    assert file_type_for(None) == "OTHER"


def test_validation_failures(db):
    empty, too_big, bad_type = run(_upload(
        _input(data=b""),
        _input(data=b"x" * 2048),
        _input(content_type="text/html"),
        max_file_size=1024,
    ))

    assert (empty.success, empty.message) == (False, "File is empty")
    assert (too_big.success, too_big.message) == (False, "File size exceeds 1.0 KB limit")
    assert bad_type.success is False
    assert "text/html" in bad_type.message


def test_ids_follow_reference_and_seq_increments(db):
    first, second = run(_upload(_input(ref_id=42), _input(ref_id=42, name="scan.png", content_type="image/png")))
    assert (first.upload_log_id, first.seq) == (42, 1)
    assert (second.upload_log_id, second.seq) == (42, 2)
    assert first.file_size == "13 B"

    loose, another = run(_upload(_input(), _input()))
    assert (loose.upload_log_id, loose.seq) == (43, 1)
    # files without a reference share the same NULL reference group
    assert (another.upload_log_id, another.seq) == (43, 2)


def test_get_and_soft_delete(db):
    run(_upload(_input(ref_id=7)))

    async def scenario():
        async with get_session_maker()() as session:
            svc = FileUploadService(session)
            found = await svc.get_file(7, 1)
            listed = await svc.get_files_by_reference("PE_MOVEMENT", 7)
            deleted = await svc.delete_file(7, 1)
            missing = await svc.delete_file(7, 99)
            return found, listed, deleted, missing, await svc.get_file(7, 1), await svc.get_files_by_reference("PE_MOVEMENT", 7)

    found, listed, deleted, missing, after, listed_after = run(scenario())
    assert (found.file_name, found.content_type, found.data) == ("memo.pdf", PDF, b"%PDF-1.4 test")
    assert [(f.id, f.seq, f.file_type) for f in listed] == [(7, 1, "PDF")]
    assert deleted is True
    assert missing is False
    assert after is None
    assert listed_after == []


def test_upload_routes(client, employee):
    _, headers = employee
    files = [
        ("files", ("memo.pdf", b"%PDF-1.4 test", PDF)),
        ("files", ("evil.exe", b"MZ", "application/x-msdownload")),
    ]

    resp = client.post("/api/PEManagement/UploadFile", files=files, data={"refId": "9"}, headers=headers)
    assert resp.status_code == 200
    ok, rejected = resp.json()
    assert (ok["success"], ok["uploadLogId"], ok["seq"]) == (True, 9, 1)
    assert rejected["success"] is False

    listed = client.get("/api/PEManagement/Files/PE_MOVEMENT/9", headers=headers).json()
    assert [(f["fileName"], f["uploadedBy"]) for f in listed] == [("memo.pdf", "E100")]

    download = client.get("/api/PEManagement/DownloadFile/9/1", headers=headers)
    assert download.status_code == 200
    assert download.content == b"%PDF-1.4 test"
    assert download.headers["content-type"] == PDF
    assert 'filename="memo.pdf"' in download.headers["content-disposition"]

    deleted = client.delete("/api/PEManagement/DeleteFile/9/1", headers=headers)
    assert deleted.json() == {"success": True, "message": "File deleted successfully"}
    assert client.get("/api/PEManagement/DownloadFile/9/1", headers=headers).status_code == 404
    assert client.delete("/api/PEManagement/DeleteFile/9/1", headers=headers).status_code == 200
    assert client.delete("/api/PEManagement/DeleteFile/9/5", headers=headers).status_code == 404


def test_download_non_ascii_file_name(client, employee):
    _, headers = employee
    name = "บันทึก.pdf"

    resp = client.post(
        "/api/PEManagement/UploadFile", files=[("files", (name, b"%PDF-1.4", PDF))], data={"refId": "9"}, headers=headers
    )
    assert resp.json()[0]["success"] is True

    download = client.get("/api/PEManagement/DownloadFile/9/1", headers=headers)
    assert download.status_code == 200
    assert download.content == b"%PDF-1.4"
    disposition = download.headers["content-disposition"]
    assert 'filename="file_9_1.pdf"' in disposition
    assert f"filename*=UTF-8''{quote(name)}" in disposition


def test_upload_rejects_when_every_file_fails(client, employee):
    _, headers = employee
    resp = client.post(
        "/api/PEManagement/UploadFile",
        files=[("files", ("empty.pdf", b"", PDF))],
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()[0]["message"] == "File is empty"


def test_upload_requires_login(client, db):
    resp = client.post("/api/PEManagement/UploadFile", files=[("files", ("memo.pdf", b"x", PDF))])
    assert resp.status_code == 401
