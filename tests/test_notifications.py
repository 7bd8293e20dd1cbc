from datetime import date
from fastapi import status
from app.dependencies import get_dispatcher
from app.main import app
from app.models.application import Application
from app.models.notification import NotificationLog, NotificationStatus
from app.services.notifications import DomainEvent, NotificationDispatcher
from tests.conf_tests import (
    client,
    clear_db,
    test_user_data,
    test_db,
    auth_headers,
    test_slot,
    priced_room,
    application_payload,
    override_get_dispatcher,
    TestingSessionLocal,
)


def broken_delivery(recipient_type, recipient_id, subject, body):
    raise ConnectionError("mail relay unreachable")


def broken_session_factory():
    raise RuntimeError("database is gone")


def created_event(application_id, recipient_id=1):
    return DomainEvent(
        name="application_created",
        application_id=application_id,
        recipient_type="user",
        recipient_id=recipient_id,
        variables={"representative": "Taro Yamada", "event_name": "Community concert"},
    )


# pylint: disable-next=redefined-outer-name
def test_send_records_delivery_failure(test_db):
    dispatcher = NotificationDispatcher(TestingSessionLocal, deliver=broken_delivery)
    result = dispatcher.send("application_approved", "user", 1, {"event_name": "Community concert"})

    assert result.success is False
    assert result.error == "mail relay unreachable"
    log = test_db.query(NotificationLog).filter(NotificationLog.id == result.log_id).first()
    assert log.status == NotificationStatus.failed
    assert log.error == "mail relay unreachable"
    assert "Community concert" in log.body


# pylint: disable-next=redefined-outer-name
def test_send_unknown_template(test_db):
    result = NotificationDispatcher(TestingSessionLocal).send("no_such_template", "user", 1, {})
    assert result.success is False
    assert result.log_id is None
    assert test_db.query(NotificationLog).count() == 0


# pylint: disable-next=redefined-outer-name
def test_dispatch_all_never_raises(auth_headers, priced_room, test_slot, test_db):
    created = client.post(
        "/applications/",
        json=application_payload(priced_room, test_slot, [date(2025, 6, 10)]),
        headers=auth_headers,
    ).json()
    event = created_event(created["id"], recipient_id=created["user_id"])

    NotificationDispatcher(TestingSessionLocal, deliver=broken_delivery).dispatch_all([event])
    NotificationDispatcher(broken_session_factory).dispatch_all([event, event])
    NotificationDispatcher(TestingSessionLocal).dispatch_all([created_event(created["id"], recipient_id=None)])

    logs = test_db.query(NotificationLog).order_by(NotificationLog.id).all()
    assert [log.status for log in logs] == [NotificationStatus.sent, NotificationStatus.failed]


# pylint: disable-next=redefined-outer-name
def test_failed_notification_keeps_reservation(auth_headers, priced_room, test_slot, test_db):
    app.dependency_overrides[get_dispatcher] = lambda: NotificationDispatcher(
        TestingSessionLocal, deliver=broken_delivery
    )
    try:
        response = client.post(
            "/applications/",
            json=application_payload(priced_room, test_slot, [date(2025, 6, 10)]),
            headers=auth_headers,
        )
    finally:
        app.dependency_overrides[get_dispatcher] = override_get_dispatcher

    assert response.status_code == status.HTTP_201_CREATED
    application = test_db.query(Application).filter(Application.id == response.json()["id"]).first()
    assert application is not None
    assert len(application.usages) == 1
    log = test_db.query(NotificationLog).one()
    assert log.status == NotificationStatus.failed
    assert log.related_application_id == application.id
