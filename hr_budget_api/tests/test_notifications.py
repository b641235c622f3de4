from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import event

from src.core.exceptions import NotFoundError
from src.db.models.movement import PeMovement
from src.db.session import get_engine, get_session_maker
from src.schemas.notification import (
    CreateMovementNotificationRequest,
    NotificationDto,
    NotificationFilterDto,
)
from src.services.notification import NotificationService, time_ago

from conftest import create_user, run

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(seconds=30), "Just now"),
        (timedelta(minutes=5, seconds=59), "5 minutes ago"),
        (timedelta(hours=3), "3 hours ago"),
        (timedelta(days=2, hours=23), "2 days ago"),
        (timedelta(days=15), "2 weeks ago"),
        (timedelta(days=95), "3 months ago"),
        (timedelta(days=800), "2 years ago"),
    ],
)
def test_time_ago_buckets(delta, expected):
    assert time_ago(NOW - delta, NOW) == expected


def test_time_ago_treats_naive_as_utc():
    assert time_ago((NOW - timedelta(hours=2)).replace(tzinfo=None), NOW) == "2 hours ago"


def _request(**overrides):
    data = {
        "movementId": 41,
        "notificationType": "MOVE_IN_REQUEST",
        "notificationCategory": "PE_MOVEMENT",
        "senderEmpCode": "E100",
        "senderCostCenter": "CC-OUT",
        "recipientEmpCode": "E200",
        "recipientCostCenter": "CC-IN",
        "title": "Move In Request",
        "message": "Please review",
        "hc": 3,
        "baseWage": "45000.50",
        "peMonth": 7,
        "peYear": 2024,
        "companyId": 1,
        "hasAttachment": True,
        "uploadLogId": 9,
    }
    data.update(overrides)
    return CreateMovementNotificationRequest.model_validate(data)


async def _with_service(fn):
    async with get_session_maker()() as session:
        return await fn(NotificationService(session))


def test_create_request_maps_onto_dto(db):
    run(create_user("sender", emp_code="E100", name="Sender Name"))
    request = _request()

    async def scenario(svc):
        notification_id = await svc.create_movement_notification(request)
        return notification_id, await svc.get_notification_by_id(notification_id)

    notification_id, dto = run(_with_service(scenario))

    assert isinstance(dto, NotificationDto)
    assert dto.notification_id == notification_id
    for field in (
        "movement_id", "notification_type", "notification_category", "sender_emp_code",
        "sender_cost_center", "recipient_emp_code", "recipient_cost_center", "title", "message",
        "hc", "base_wage", "pe_month", "pe_year", "company_id", "has_attachment", "upload_log_id",
    ):
        assert getattr(dto, field) == getattr(request, field), field
    assert dto.base_wage == Decimal("45000.50")
    assert dto.sender_name == "Sender Name"
    assert dto.is_read is False
    assert dto.email_sent is False
    assert dto.action_url == "/Home/BudgetPEManagement?movementId=41&highlight=true"
    assert dto.time_ago == "Just now"


def test_counts_listing_and_read_state(db):
    async def scenario(svc):
        ids = [
            await svc.create_movement_notification(_request(title="one")),
            await svc.create_movement_notification(_request(title="two", notificationCategory="PE_ADDITIONAL")),
            await svc.create_movement_notification(_request(title="three")),
            await svc.create_movement_notification(_request(title="other", recipientEmpCode="E999")),
        ]
        before = await svc.get_count_by_category("E200")
        assert await svc.mark_as_read(ids[0], "E200") is True
        assert await svc.mark_as_read(ids[0], "E999") is False
        assert await svc.mark_as_read(123456, "E200") is False
        after_one = await svc.get_unread_count("E200")
        page = await svc.get_notifications("E200", NotificationFilterDto(category="ALL", page=1, page_size=2))
        movement_only = await svc.get_notifications("E200", NotificationFilterDto(category="PE_MOVEMENT"))
        marked = await svc.mark_all_as_read("E200")
        return before, after_one, page, movement_only, marked, await svc.get_unread_count("E200")

    before, after_one, page, movement_only, marked, remaining = run(_with_service(scenario))

    assert before.total_unread == 3
    assert before.pe_movement == 2
    assert before.pe_additional == 1
    assert before.system == 0
    assert after_one == 2

    assert page.total_count == 3
    assert page.unread_count == 2
    assert [n.title for n in page.items] == ["three", "two"]
    assert page.count_by_category == {"PE_MOVEMENT": 1, "PE_ADDITIONAL": 1}

    assert movement_only.total_count == 2
    assert {n.title for n in movement_only.items} == {"one", "three"}

    assert marked == 2
    assert remaining == 0


def test_unread_filter_and_paging(db):
    async def scenario(svc):
        first = await svc.create_movement_notification(_request(title="a"))
        for title in ("b", "c"):
            await svc.create_movement_notification(_request(title=title))
        await svc.mark_as_read(first, "E200")
        unread = await svc.get_notifications("E200", NotificationFilterDto(is_read=False))
        read = await svc.get_notifications("E200", NotificationFilterDto(is_read=True))
        second_page = await svc.get_notifications("E200", NotificationFilterDto(page=2, page_size=2))
        return unread, read, second_page

    unread, read, second_page = run(_with_service(scenario))

    assert unread.total_count == 2 and unread.unread_count == 2
    assert [n.title for n in read.items] == ["a"]
    assert read.unread_count == 0
    assert [n.title for n in second_page.items] == ["a"]


def _movement(**overrides):
    values = dict(
        company_id=1,
        move_in_cost_center_code="CC-IN",
        move_in_month="7",
        move_in_year="2024",
        move_in_hc=2,
        move_in_base_wage=Decimal("1000.00"),
        move_out_cost_center_code="CC-OUT",
        move_out_month=None,
        move_out_year=None,
        move_out_hc=None,
        move_out_base_wage=None,
        approval_status="APPROVED",
        approved_by="A001",
        updated_by="E100",
    )
    values.update(overrides)
    return PeMovement(**values)


async def _add_movement(movement):
    async with get_session_maker()() as session:
        session.add(movement)
        await session.commit()
        return movement.id


def test_approval_result_notification_for_requester(db):
    movement_id = run(_add_movement(_movement()))

    async def scenario(svc):
        notification_id = await svc.create_approval_result_notification(movement_id, True)
        return await svc.get_notification_by_id(notification_id)

    dto = run(_with_service(scenario))

    assert dto.notification_type == "MOVE_APPROVED"
    assert dto.notification_category == "PE_MOVEMENT"
    assert dto.title == "Move In Request Approved"
    assert dto.message == "Your move request has been approved."
    assert dto.sender_emp_code == "A001"
    assert dto.recipient_emp_code == "E100"
    assert dto.recipient_cost_center == "CC-OUT"
    assert dto.hc == 2
    assert dto.base_wage == Decimal("1000.00")
    assert (dto.pe_month, dto.pe_year) == (7, 2024)
    assert dto.action_url == f"/Home/BudgetPEManagement?movementId={movement_id}"


def test_rejection_notification_carries_reason_and_defaults(db):
    movement_id = run(_add_movement(_movement(
        approved_by=None, move_out_hc=5, move_out_base_wage=Decimal("2500.00"),
        move_out_month="x", move_in_year=None,
    )))

    async def scenario(svc):
        notification_id = await svc.create_approval_result_notification(movement_id, False, "Budget frozen")
        return await svc.get_notification_by_id(notification_id)

    dto = run(_with_service(scenario))

    assert dto.notification_type == "MOVE_REJECTED"
    assert dto.title == "Move In Request Rejected"
    assert dto.message == "Your move request has been rejected. Reason: Budget frozen"
    assert dto.sender_emp_code == "SYSTEM"
    assert dto.hc == 5
    assert dto.base_wage == Decimal("2500.00")
    assert (dto.pe_month, dto.pe_year) == (0, 0)


def test_approval_result_for_missing_movement(db):
    with pytest.raises(NotFoundError):
        run(_with_service(lambda svc: svc.create_approval_result_notification(999, True)))


def test_result_notification_keeps_missing_requester_and_empty_period(db):
    movement_id = run(_add_movement(_movement(updated_by=None, move_out_month="", move_out_year="2025")))

    async def scenario(svc):
        notification_id = await svc.create_approval_result_notification(movement_id, True)
        return await svc.get_notification_by_id(notification_id)

    dto = run(_with_service(scenario))

    assert dto.recipient_emp_code == ""
    # an empty move-out month does not fall through to the move-in month
    assert (dto.pe_month, dto.pe_year) == (0, 2025)


def test_listing_resolves_sender_names_in_one_query(db):
    run(create_user("first", emp_code="E100", name="First Sender"))
    run(create_user("second", emp_code="E300", name="Second Sender"))
    statements = []

    def capture(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    async def scenario(svc):
        for sender in ("E100", "E300", "E404", "E100"):
            await svc.create_movement_notification(_request(senderEmpCode=sender))
        engine = get_engine().sync_engine
        event.listen(engine, "before_cursor_execute", capture)
        try:
            return await svc.get_notifications("E200", NotificationFilterDto())
        finally:
            event.remove(engine, "before_cursor_execute", capture)

    page = run(_with_service(scenario))

    assert [(n.sender_emp_code, n.sender_name) for n in page.items] == [
        ("E100", "First Sender"),
        ("E404", None),
        ("E300", "Second Sender"),
        ("E100", "First Sender"),
    ]
    assert len([s for s in statements if "FROM users" in s]) == 1
