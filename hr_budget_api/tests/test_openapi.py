import json

from src.api.generate_openapi import write_openapi


def test_write_openapi(tmp_path):
    path = write_openapi(str(tmp_path / "interfaces"))

    with open(path) as f:
        schema = json.load(f)

    assert schema["info"]["title"] == "HR Budget API"
    for route in (
        "/api/Auth/GetCurrentUser",
        "/api/Notification/list",
        "/api/PEManagement/UploadFile",
        "/api/Settings/savePEallocationbatch",
    ):
        assert route in schema["paths"]
    assert [h["name"] for h in schema["x-request-headers"]] == ["X-Tenant-ID", "X-Correlation-ID"]
