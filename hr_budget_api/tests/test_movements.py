import json
from decimal import Decimal

import pytest

from src.core.exceptions import BusinessRuleError, NotFoundError
from src.db.session import get_session_maker
from src.schemas.audit import ActivityLogQuery
from src.schemas.movement import MovementCreate
from src.schemas.notification import NotificationFilterDto
from src.services.audit import AuditLogService
from src.services.movement import MovementService
from src.services.notification import NotificationService

from conftest import run


def _payload(**overrides):
    data = {
        "companyId": 1,
        "moveOutCostCenterCode": "CC-OUT",
        "moveInCostCenterCode": "CC-IN",
        "peMonth": 3,
        "peYear": 2025,
        "hc": 2,
        "baseWage": "30000.00",
        "pendingEmpCode": "A001",
    }
    data.update(overrides)
    return MovementCreate.model_validate(data)


def _submit(payload=None, submitted_by="E100"):
    async def scenario():
        async with get_session_maker()() as session:
            movement = await MovementService(session).create(payload or _payload(), submitted_by)
            return movement.id

    return run(scenario())


async def _in_session(fn):
    async with get_session_maker()() as session:
        return await fn(session)


def test_create_records_both_sides_and_notifies_approver(db):
    movement_id = _submit()

    async def scenario(session):
        movement = await MovementService(session).repo.get(movement_id)
        inbox = await NotificationService(session).get_notifications("A001", NotificationFilterDto())
        return movement, inbox

    movement, inbox = run(_in_session(scenario))

    assert movement.approval_status == "PENDING"
    assert movement.status == "Pending Approval"
    assert (movement.move_in_month, movement.move_in_year) == ("3", "2025")
    assert (movement.move_out_month, movement.move_out_year) == ("3", "2025")
    assert movement.move_in_hc == movement.move_out_hc == 2
    assert movement.pending_cost_center == "CC-IN"
    assert movement.updated_by == "E100"
    assert [n.notification_type for n in inbox.items] == ["MOVE_IN_REQUEST"]
    assert inbox.items[0].sender_emp_code == "E100"
    assert inbox.items[0].base_wage == Decimal("30000.00")


def test_create_without_approver_sends_nothing(db):
    _submit(_payload(pendingEmpCode=None))

    count = run(_in_session(lambda s: NotificationService(s).get_unread_count("A001")))
    assert count == 0


def test_approve_then_second_decision_is_rejected(db):
    movement_id = _submit()

    movement = run(_in_session(lambda s: MovementService(s).approve(movement_id, "A001", "ok")))
    assert movement.approval_status == "APPROVED"
    assert movement.status == "Approved"
    assert movement.approved_by == "A001"
    assert movement.approved_date is not None

    with pytest.raises(BusinessRuleError, match="not pending"):
        run(_in_session(lambda s: MovementService(s).reject(movement_id, "A001", "late")))


def test_reject_requires_reason_and_existing_movement(db):
    movement_id = _submit()

    with pytest.raises(BusinessRuleError, match="reason is required"):
        run(_in_session(lambda s: MovementService(s).reject(movement_id, "A001", "   ")))
    with pytest.raises(NotFoundError):
        run(_in_session(lambda s: MovementService(s).reject(999, "A001", "no budget")))
    with pytest.raises(NotFoundError):
        run(_in_session(lambda s: MovementService(s).reject(999, "A001", "")))

    movement = run(_in_session(lambda s: MovementService(s).reject(movement_id, "A001", "no budget")))
    assert movement.approval_status == "REJECTED"
    assert movement.rejected_reason == "no budget"


def test_pending_list_is_scoped_to_approver(db):
    _submit()
    _submit(_payload(pendingEmpCode="B002", companyId=2))

    mine = run(_in_session(lambda s: MovementService(s).list_pending(emp_code="A001")))
    other_company = run(_in_session(lambda s: MovementService(s).list_pending(company_id=2)))

    assert [m.pending_emp_code for m in mine] == ["A001"]
    assert [m.pending_emp_code for m in other_company] == ["B002"]


def test_approve_route_notifies_requester_and_logs(client, admin):
    _, headers = admin
    movement_id = _submit()

    response = client.post(f"/api/PEManagement/Movement/Approve/{movement_id}", json={"remark": "fine"}, headers=headers)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Movement approved successfully",
        "movementId": str(movement_id),
    }

    async def scenario(session):
        inbox = await NotificationService(session).get_notifications("E100", NotificationFilterDto())
        logs = await AuditLogService(session).get_activity_logs(ActivityLogQuery(module_name="PE Management"))
        return inbox, logs

    inbox, logs = run(_in_session(scenario))
    assert [n.notification_type for n in inbox.items] == ["MOVE_APPROVED"]
    assert inbox.items[0].sender_emp_code == "A001"
    assert [(log.action, log.status, log.user_id) for log in logs.data] == [("APPROVE", "SUCCESS", "A001")]
    assert json.loads(logs.data[0].new_value) == {"movementId": movement_id, "approvedBy": "A001", "remark": "fine"}


def test_approve_route_failures(client, admin):
    _, headers = admin

    missing = client.post("/api/PEManagement/Movement/Approve/4040", headers=headers)
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "message": "Movement not found", "movementId": "4040"}

    movement_id = _submit()
    client.post(f"/api/PEManagement/Movement/Approve/{movement_id}", headers=headers)
    again = client.post(f"/api/PEManagement/Movement/Approve/{movement_id}", headers=headers)
    assert again.status_code == 400
    assert again.json()["message"] == "Movement is not pending approval"

    logs = run(_in_session(lambda s: AuditLogService(s).get_activity_logs(ActivityLogQuery(status="FAILED"))))
    assert len(logs.data) == 2


def test_reject_route(client, admin, employee):
    _, headers = admin
    movement_id = _submit()

    blank = client.post(f"/api/PEManagement/Movement/Reject/{movement_id}", json={"reason": ""}, headers=headers)
    assert blank.status_code == 400
    assert blank.json() == {
        "success": False,
        "message": "Rejection reason is required",
        "movementId": str(movement_id),
    }
    failed = run(_in_session(lambda s: AuditLogService(s).get_activity_logs(ActivityLogQuery(status="FAILED"))))
    assert [(log.action, log.target_id) for log in failed.data] == [("REJECT", str(movement_id))]

    rejected = client.post(
        f"/api/PEManagement/Movement/Reject/{movement_id}", json={"reason": "Over budget"}, headers=headers
    )
    assert rejected.json()["message"] == "Movement rejected successfully"

    _, employee_headers = employee
    inbox = client.get("/api/Notification/list", headers=employee_headers).json()
    assert inbox["items"][0]["notificationType"] == "MOVE_REJECTED"
    assert inbox["items"][0]["message"] == "Your move request has been rejected. Reason: Over budget"


def test_reject_missing_movement_with_blank_reason_is_not_found(client, admin):
    _, headers = admin

    response = client.post("/api/PEManagement/Movement/Reject/9999", json={"reason": ""}, headers=headers)

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Movement not found", "movementId": "9999"}
    failed = run(_in_session(lambda s: AuditLogService(s).get_activity_logs(ActivityLogQuery(status="FAILED"))))
    assert [(log.action, log.error_message) for log in failed.data] == [("REJECT", "Movement not found")]


def test_submit_and_pending_routes(client, admin, employee):
    _, employee_headers = employee
    created = client.post(
        "/api/PEManagement/Movement",
        json={
            "moveOutCostCenterCode": "CC-OUT",
            "moveInCostCenterCode": "CC-IN",
            "peMonth": 1,
            "peYear": 2025,
            "hc": 1,
            "pendingEmpCode": "A001",
        },
        headers=employee_headers,
    )
    assert created.status_code == 201
    assert created.json()["updatedBy"] == "E100"

    _, admin_headers = admin
    pending = client.get("/api/PEManagement/Pending", headers=admin_headers).json()
    assert [m["id"] for m in pending] == [created.json()["id"]]
    assert client.get("/api/PEManagement/Pending").status_code == 401
