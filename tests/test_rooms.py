import pytest
from datetime import date
from fastapi import status
from app.models.holiday import ClosedDate, Holiday
from app.models.room import Room, TimeSlot
from tests.conf_tests import (
    client,
    clear_db,
    test_user_data,
    test_db,
    auth_headers,
    staff_headers,
    test_slot,
    priced_room,
    application_payload,
)


@pytest.fixture
def test_room(test_db): # pylint: disable=redefined-outer-name
    room = Room(name="Conference Room A", capacity=10, location="Floor 1")
    test_db.add(room)
    test_db.commit()
    test_db.refresh(room)
    return room


# Tests
def test_create_room_unauthorized():
    response = client.post(
        "/rooms/", json={"name": "Meeting Room", "capacity": 5, "location": "Floor 2"}
    )
    assert response.status_code in [
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
    ]


# pylint: disable-next=redefined-outer-name
def test_create_room_requires_staff(auth_headers):
    response = client.post("/rooms/", json={"name": "Meeting Room"}, headers=auth_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["detail"] == "Staff privileges required"


# pylint: disable-next=redefined-outer-name
def test_create_room_success(staff_headers):
    room_data = {"name": "Meeting Room", "capacity": 5, "location": "Floor 2"}
    response = client.post("/rooms/", json=room_data, headers=staff_headers)
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["is_active"] is True


# pylint: disable-next=redefined-outer-name
def test_get_rooms_with_data(test_room):
    response = client.get("/rooms/")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert len(data) == 1
    assert data[0]["id"] == test_room.id
    assert data[0]["name"] == test_room.name


def test_get_room_not_found():
    response = client.get("/rooms/9999")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Room not found"


# pylint: disable-next=redefined-outer-name
def test_partial_update_room(staff_headers, test_room):
    response = client.put(f"/rooms/{test_room.id}", json={"capacity": 20}, headers=staff_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["capacity"] == 20
    assert data["name"] == test_room.name
    assert data["location"] == test_room.location


# pylint: disable-next=redefined-outer-name
def test_delete_room_deactivates(staff_headers, test_room, test_db):
    response = client.delete(f"/rooms/{test_room.id}", headers=staff_headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT

    test_db.refresh(test_room)
    assert test_room.is_active is False
    assert client.get("/rooms/").json() == []
    assert len(client.get("/rooms/", params={"include_inactive": True}).json()) == 1


# pylint: disable-next=redefined-outer-name
def test_purge_room_without_history(staff_headers, test_room, test_db):
    response = client.delete(f"/rooms/{test_room.id}", params={"purge": True}, headers=staff_headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT
    test_db.expire_all()
    assert test_db.query(Room).filter(Room.id == test_room.id).first() is None


# pylint: disable-next=redefined-outer-name
def test_purge_room_with_history_refused(staff_headers, auth_headers, priced_room, test_slot):
    created = client.post(
        "/applications/",
        json=application_payload(priced_room, test_slot, [date(2025, 6, 10)]),
        headers=auth_headers,
    )
    assert created.status_code == status.HTTP_201_CREATED

    response = client.delete(f"/rooms/{priced_room.id}", params={"purge": True}, headers=staff_headers)
    assert response.status_code == status.HTTP_409_CONFLICT


# pylint: disable-next=redefined-outer-name
def test_set_and_get_prices(staff_headers, test_room, test_slot):
    response = client.put(
        f"/rooms/{test_room.id}/prices",
        json=[{"time_slot_id": test_slot.id, "base_price": 8000, "ac_price_per_hour": 300}],
        headers=staff_headers,
    )
    assert response.status_code == status.HTTP_200_OK

    response = client.put(
        f"/rooms/{test_room.id}/prices",
        json=[{"time_slot_id": test_slot.id, "base_price": 9000}],
        headers=staff_headers,
    )
    assert response.status_code == status.HTTP_200_OK

    prices = client.get(f"/rooms/{test_room.id}/prices").json()
    assert len(prices) == 1
    assert prices[0]["base_price"] == 9000
    assert prices[0]["ac_price_per_hour"] == 0


# pylint: disable-next=redefined-outer-name
def test_set_price_unknown_slot(staff_headers, test_room):
    response = client.put(
        f"/rooms/{test_room.id}/prices",
        json=[{"time_slot_id": 9999, "base_price": 8000}],
        headers=staff_headers,
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


# pylint: disable-next=redefined-outer-name
def test_month_availability(auth_headers, priced_room, test_slot, test_db):
    test_db.add(Holiday(date=date(2025, 6, 11), name="Founding Day"))
    test_db.add(ClosedDate(date=date(2025, 6, 12), room_id=priced_room.id, reason="Maintenance"))
    test_db.commit()
    client.post(
        "/applications/",
        json=application_payload(priced_room, test_slot, [date(2025, 6, 10)]),
        headers=auth_headers,
    )

    response = client.get(
        f"/rooms/{priced_room.id}/availability",
        params={"month": "2025-06", "time_slot_id": test_slot.id},
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["month"] == "2025-06"
    days = {day["date"]: day["status"] for day in data["days"]}
    assert len(days) == 30
    assert days["2025-06-01"] == "closed"  # Sunday
    assert days["2025-06-07"] == "closed"  # Saturday
    assert days["2025-06-09"] == "available"
    assert days["2025-06-10"] == "booked"
    assert days["2025-06-11"] == "closed"
    assert days["2025-06-12"] == "closed"


# pylint: disable-next=redefined-outer-name
def test_past_month_availability(test_room):
    response = client.get(f"/rooms/{test_room.id}/availability", params={"month": "2025-05"})
    assert response.status_code == status.HTTP_200_OK
    assert {day["status"] for day in response.json()["days"]} == {"past"}


# pylint: disable-next=redefined-outer-name
def test_availability_is_repeatable(test_room):
    first = client.get(f"/rooms/{test_room.id}/availability", params={"month": "2025-07"}).json()
    second = client.get(f"/rooms/{test_room.id}/availability", params={"month": "2025-07"}).json()
    assert first == second


# pylint: disable-next=redefined-outer-name
def test_availability_bad_month(test_room):
    response = client.get(f"/rooms/{test_room.id}/availability", params={"month": "June"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


# pylint: disable-next=redefined-outer-name
def test_create_time_slot_rejects_inverted_times(staff_headers):
    response = client.post(
        "/time-slots/",
        json={"code": "evening", "name": "Evening", "start_time": "21:00", "end_time": "18:00"},
        headers=staff_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


# pylint: disable-next=redefined-outer-name
def test_create_time_slot(staff_headers, test_db):
    response = client.post(
        "/time-slots/",
        json={"code": "evening", "name": "Evening", "start_time": "18:00", "end_time": "21:00"},
        headers=staff_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert test_db.query(TimeSlot).filter(TimeSlot.code == "evening").count() == 1
