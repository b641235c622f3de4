from src.db.session import get_session_maker
from src.schemas.notification import CreateMovementNotificationRequest
from src.services.notification import NotificationService

from conftest import run


def _notify(recipient, title="Move In Request", category="PE_MOVEMENT"):
    async def scenario():
        async with get_session_maker()() as session:
            return await NotificationService(session).create_movement_notification(
                CreateMovementNotificationRequest(
                    movement_id=7,
                    notification_type="MOVE_IN_REQUEST",
                    notification_category=category,
                    sender_emp_code="A001",
                    recipient_emp_code=recipient,
                    title=title,
                )
            )

    return run(scenario())


def test_anonymous_callers_get_zero_counts(client):
    assert client.get("/api/Notification/count").json() == {"success": True, "unreadCount": 0}

    body = client.get("/api/Notification/count-by-category").json()
    assert body["counts"] == {}
    assert body["summary"]["totalUnread"] == 0

    listing = client.get("/api/Notification/list").json()
    assert listing["items"] == [] and listing["totalCount"] == 0


def test_read_requires_login(client):
    response = client.post("/api/Notification/read/1")
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "User not authenticated"
    assert client.post("/api/Notification/read-all").status_code == 401


def test_recipient_flow(client, employee):
    _, headers = employee
    first = _notify("E100", title="first")
    _notify("E100", title="second", category="SYSTEM")
    _notify("E999", title="someone else")

    assert client.get("/api/Notification/count", headers=headers).json()["unreadCount"] == 2

    by_category = client.get("/api/Notification/count-by-category", headers=headers).json()
    assert by_category["counts"] == {"PE_MOVEMENT": 1, "SYSTEM": 1}
    assert by_category["summary"]["totalUnread"] == 2
    assert by_category["summary"]["system"] == 1

    listing = client.get(
        "/api/Notification/list", params={"category": "ALL", "page": 1, "pageSize": 10}, headers=headers
    ).json()
    assert [n["title"] for n in listing["items"]] == ["second", "first"]
    assert listing["items"][0]["timeAgo"] == "Just now"
    assert listing["countByCategory"] == {"PE_MOVEMENT": 1, "SYSTEM": 1}

    read = client.post(f"/api/Notification/read/{first}", headers=headers)
    assert read.json() == {"success": True, "message": "Notification marked as read"}
    assert client.post("/api/Notification/read/999999", headers=headers).status_code == 404

    detail = client.get(f"/api/Notification/{first}", headers=headers).json()
    assert detail["data"]["isRead"] is True
    assert detail["data"]["notificationId"] == first

    unread_only = client.get("/api/Notification/list", params={"isRead": "false"}, headers=headers).json()
    assert [n["title"] for n in unread_only["items"]] == ["second"]

    read_all = client.post("/api/Notification/read-all", headers=headers).json()
    assert read_all == {"success": True, "message": "1 notifications marked as read", "count": 1}
    assert client.get("/api/Notification/count", headers=headers).json()["unreadCount"] == 0


def test_missing_notification_is_404(client):
    response = client.get("/api/Notification/424242")
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Notification not found"


def test_create_requires_admin_or_super_user(client, admin, employee):
    payload = {
        "movementId": 12,
        "notificationType": "MOVE_IN_REQUEST",
        "notificationCategory": "PE_MOVEMENT",
        "senderEmpCode": "A001",
        "recipientEmpCode": "E100",
        "title": "Move In Request",
        "hc": 1,
        "baseWage": 100,
    }
    _, employee_headers = employee
    assert client.post("/api/Notification/create", json=payload, headers=employee_headers).status_code == 403
    assert client.post("/api/Notification/create", json=payload).status_code == 401

    _, admin_headers = admin
    created = client.post("/api/Notification/create", json=payload, headers=admin_headers)
    assert created.status_code == 201
    notification_id = created.json()["notificationId"]

    detail = client.get(f"/api/Notification/{notification_id}").json()["data"]
    assert detail["actionUrl"] == "/Home/BudgetPEManagement?movementId=12&highlight=true"
    assert detail["recipientEmpCode"] == "E100"
