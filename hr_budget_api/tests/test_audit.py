import json
from datetime import date, datetime, timezone
from types import SimpleNamespace

from starlette.requests import Request

from src.db.models.logs import ActivityLog
from src.db.session import get_session_maker
from src.schemas.audit import ActivityEntry, ActivityLogQuery
from src.schemas.auth import UserCreate
from src.services.audit import AuditLogService, client_ip, request_line, serialize_and_mask, user_agent

from conftest import run


def _request(headers=(), client=("127.0.0.1", 5000), query=b"", path="/api/Settings/BuSup"):
    scope = {
        "type": "http",
        "method": "POST",
        "path": path,
        "query_string": query,
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers],
        "client": client,
    }
    return Request(scope)


def test_serialize_camelizes_and_masks():
    value = {"user_name": "bob", "password": "secret!", "nested": {"api_key": "k", "Pin": "1234"}, "none": None}

    data = json.loads(serialize_and_mask(value))

    assert data == {"userName": "bob", "password": "***MASKED***", "nested": {"apiKey": "***MASKED***", "pin": "***MASKED***"}}


def test_serialize_lowers_pascal_case_keys():
    value = {"MovementId": 7, "ApprovedBy": "A001", "already_snake": 1, "alreadyCamel": 2}

    data = json.loads(serialize_and_mask(value))

    assert data == {"movementId": 7, "approvedBy": "A001", "alreadySnake": 1, "alreadyCamel": 2}


def test_serialize_pydantic_models_masks_password():
    payload = UserCreate(user_name="bob", email="bob@example.com", password="Passw0rd!", roles=["USER"])

    data = json.loads(serialize_and_mask(payload))

    assert data["userName"] == "bob"
    assert data["password"] == "***MASKED***"
    assert data["roles"] == ["USER"]


def test_serialize_strings():
    assert serialize_and_mask(None) is None
    assert json.loads(serialize_and_mask('{"Token": "abc", "name": "x"}')) == {"Token": "***MASKED***", "name": "x"}
    assert serialize_and_mask('not json "password":"abc"') == 'not json "password":"***MASKED***"'


def test_request_metadata():
    forwarded = _request(headers=[("X-Forwarded-For", "10.0.0.1, 10.0.0.2"), ("User-Agent", "x" * 600)], query=b"a=1")
    assert client_ip(forwarded) == "10.0.0.1"
    assert len(user_agent(forwarded)) == 500
    assert request_line(forwarded) == "POST /api/Settings/BuSup?a=1"

    direct = _request(client=None)
    assert client_ip(direct) == "Unknown"
    assert user_agent(direct) == "Unknown"
    assert request_line(direct) == "POST /api/Settings/BuSup"
    assert client_ip(None) == "Unknown"
    assert len(request_line(_request(path="/" + "p" * 600))) == 500


async def _log(entry, request=None):
    async with get_session_maker()() as session:
        await AuditLogService(session).log_activity(entry, request)


async def _query(query):
    async with get_session_maker()() as session:
        return await AuditLogService(session).get_activity_logs(query)


def test_log_activity_uses_request_user(db):
    request = _request(headers=[("User-Agent", "pytest")])
    request.state.user = SimpleNamespace(emp_code="E100", user_name="somchai", name="Somchai")
    request.state.user_roles = ["HRBP", "USER"]

    run(_log(ActivityEntry(module_name="Settings", action="UPDATE", target_id="5", new_value={"password": "x"}), request))
    run(_log(ActivityEntry(module_name="Settings", action="VIEW")))

    logs = run(_query(ActivityLogQuery(sort_field="action", sort_order="asc"))).data
    assert [(log.action, log.user_id) for log in logs] == [("UPDATE", "E100"), ("VIEW", "SYSTEM")]
    first = logs[0]
    assert (first.username, first.user_role, first.ip_address, first.user_agent) == ("Somchai", "HRBP", "127.0.0.1", "pytest")
    assert first.request_url == "POST /api/Settings/BuSup"
    assert first.new_value == '{"password": "***MASKED***"}'
    assert logs[1].ip_address == "Unknown"


def test_log_activity_never_raises(db):
    # ModuleName is NOT NULL; the failed insert is swallowed and rolled back
    entry = ActivityEntry.model_construct(module_name=None, action="VIEW", status="SUCCESS")
    run(_log(entry))

    run(_log(ActivityEntry(module_name="Settings", action="VIEW")))
    assert run(_query(ActivityLogQuery())).total_count == 1


def _row(ts, module="Settings", action="UPDATE", status="SUCCESS", user_id="E100", username=None, target_id=None):
    return ActivityLog(
        timestamp=ts, user_id=user_id, username=username, module_name=module,
        action=action, status=status, target_id=target_id,
    )


def test_activity_filters_and_distinct_values(db):
    async def seed():
        async with get_session_maker()() as session:
            session.add_all([
                _row(datetime(2024, 1, 10, 8, tzinfo=timezone.utc), module="Settings", action="CREATE"),
                _row(datetime(2024, 1, 11, 23, 59, tzinfo=timezone.utc), module="PE Management", action="APPROVE",
                     user_id="A001", username="Admin", target_id="77"),
                _row(datetime(2024, 1, 12, 0, 0, 1, tzinfo=timezone.utc), module="Authentication", action="LOGIN",
                     status="FAILED", user_id="SYSTEM"),
            ])
            await session.commit()

    run(seed())

    def actions(**kwargs):
        return [log.action for log in run(_query(ActivityLogQuery(**kwargs))).data]

    assert actions() == ["LOGIN", "APPROVE", "CREATE"]
    assert actions(date_from=date(2024, 1, 11), date_to=date(2024, 1, 11)) == ["APPROVE"]
    assert actions(module_name="ALL", action="ALL", status="ALL") == ["LOGIN", "APPROVE", "CREATE"]
    assert actions(status="FAILED") == ["LOGIN"]
    assert actions(user_id="A00") == ["APPROVE"]
    assert actions(search_text="77") == ["APPROVE"]
    assert actions(sort_field="moduleName", sort_order="asc") == ["LOGIN", "APPROVE", "CREATE"]

    result = run(_query(ActivityLogQuery()))
    assert result.total_count == 3
    assert result.page == 1

    async def distinct():
        async with get_session_maker()() as session:
            svc = AuditLogService(session)
            return await svc.get_distinct_modules(), await svc.get_distinct_actions()

    modules, action_codes = run(distinct())
    assert modules == ["Authentication", "PE Management", "Settings"]
    assert action_codes == ["APPROVE", "CREATE", "LOGIN"]
