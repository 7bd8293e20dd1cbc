import pytest
from datetime import date
from app.config import parse_fee_tiers
from app.errors import NotFoundError, ValidationError
from app.models.room import EquipmentPriceType
from app.repositories.pricing import EquipmentItem, SlotPrice
from app.services.availability import AvailabilityChecker, AvailabilityStatus
from app.services.fees import FeeSchedule
from app.services.holidays import HolidayOracle
from app.services.pricing import AddOns, EquipmentRequest, PricingCalculator, round_yen, ticket_multiplier


class FakePricingRepository:
    def __init__(self):
        self.prices = {(1, 1): SlotPrice(room_id=1, time_slot_id=1, base_price=10000, ac_price_per_hour=500)}
        self.equipment = {
            1: EquipmentItem(1, "Microphone", EquipmentPriceType.per_slot, 300, 4, True),
            2: EquipmentItem(2, "Stage lights", EquipmentPriceType.flat, 2000, 1, True),
            3: EquipmentItem(3, "Whiteboard", EquipmentPriceType.free, 0, 2, True),
            4: EquipmentItem(4, "Piano", EquipmentPriceType.per_slot, 5000, 1, False),
        }

    def get_slot_price(self, room_id, time_slot_id):
        return self.prices.get((room_id, time_slot_id))

    def get_equipment(self, equipment_ids):
        return {key: self.equipment[key] for key in equipment_ids if key in self.equipment}


class NoHolidays:
    def holiday_dates(self, start, end):
        return set()

    def recurring_month_days(self):
        return set()

    def closed_dates(self, start, end, room_id=None):
        return set()


class FakeUsages:
    def __init__(self, booked=()):
        self.booked = set(booked)

    def booked_dates(self, room_id, start, end, time_slot_id=None):
        return {day for day in self.booked if start <= day <= end}


@pytest.fixture
def calculator():
    return PricingCalculator(FakePricingRepository())


def test_round_yen_half_up():
    assert round_yen(2.5) == 3
    assert round_yen(1.4999) == 1
    assert round_yen(15000.5) == 15001


@pytest.mark.parametrize(
    "entrance_fee, expected",
    [(0, 1.0), (1, 1.5), (3000, 1.5), (3001, 2.0)],
)
def test_ticket_multiplier(entrance_fee, expected):
    assert ticket_multiplier(entrance_fee) == expected


# pylint: disable-next=redefined-outer-name
def test_total_is_sum_of_usages(calculator):
    quote = calculator.compute_total(1, [date(2025, 6, 11), date(2025, 6, 10)], 1)
    assert [line.usage_date for line in quote.lines] == [date(2025, 6, 10), date(2025, 6, 11)]
    assert quote.total == 20000


# pylint: disable-next=redefined-outer-name
def test_add_ons(calculator):
    add_ons = AddOns(
        ac_hours=1.5,
        equipment=[EquipmentRequest(1, 2), EquipmentRequest(2, 1), EquipmentRequest(3, 2)],
    )
    quote = calculator.compute_total(1, [date(2025, 6, 10)], 1, add_ons, entrance_fee_amount=5000)
    line = quote.lines[0]
    assert line.room_charge == 20000
    assert line.ac_charge == 750
    assert line.equipment_charge == 2600
    assert [item.line_amount for item in line.equipment_lines] == [600, 2000, 0]
    assert quote.total == 23350


# pylint: disable-next=redefined-outer-name
def test_equipment_rules(calculator):
    with pytest.raises(NotFoundError):
        calculator.compute_total(1, [date(2025, 6, 10)], 1, AddOns(equipment=[EquipmentRequest(99)]))
    with pytest.raises(ValidationError):
        calculator.compute_total(1, [date(2025, 6, 10)], 1, AddOns(equipment=[EquipmentRequest(4)]))
    with pytest.raises(ValidationError):
        calculator.compute_total(1, [date(2025, 6, 10)], 1, AddOns(equipment=[EquipmentRequest(1, 5)]))
    with pytest.raises(ValidationError):
        calculator.compute_total(1, [date(2025, 6, 10)], 1, AddOns(equipment=[EquipmentRequest(1, 0)]))


# pylint: disable-next=redefined-outer-name
def test_slot_not_offered(calculator):
    with pytest.raises(ValidationError):
        calculator.compute_total(1, [date(2025, 6, 10)], 2)


# pylint: disable-next=redefined-outer-name
def test_actual_ac_charge(calculator):
    assert calculator.actual_ac_charge(1, 1, 2.5) == 1250


def test_fee_schedule_tiers():
    schedule = FeeSchedule([(7, 0), (3, 30), (0, 80)])
    assert schedule.percentage_for(10) == 0
    assert schedule.percentage_for(7) == 0
    assert schedule.percentage_for(6) == 30
    assert schedule.percentage_for(3) == 30
    assert schedule.percentage_for(2) == 80
    assert schedule.percentage_for(-1) == 80
    assert schedule.fee_for(20000, 2) == 16000
    assert schedule.fee_for(12345, 5) == 3704


def test_fee_never_grows_with_notice():
    schedule = FeeSchedule(parse_fee_tiers("14:0,7:20,3:50,1:80,0:100"))
    fees = [schedule.fee_for(10000, days) for days in range(0, 20)]
    assert fees == sorted(fees, reverse=True)


@pytest.mark.parametrize(
    "tiers",
    [[], [(3, 0)], [(0, 50), (3, 80)], [(0, 120)], [(0, 50), (0, 60)]],
)
def test_fee_schedule_rejects_bad_tables(tiers):
    with pytest.raises(ValueError):
        FeeSchedule(tiers)


def test_parse_fee_tiers():
    assert parse_fee_tiers("7:0, 3:30,0:80") == [(7, 0), (3, 30), (0, 80)]


def test_availability_precedence():
    oracle = HolidayOracle(NoHolidays())
    checker = AvailabilityChecker(
        oracle,
        FakeUsages(booked={date(2025, 6, 2), date(2025, 6, 10), date(2025, 6, 14)}),
        clock=lambda: date(2025, 6, 3),
    )
    statuses = checker.check_availability(
        1, [date(2025, 6, 2), date(2025, 6, 10), date(2025, 6, 14), date(2025, 6, 11)]
    )
    assert statuses == {
        date(2025, 6, 2): AvailabilityStatus.past,
        date(2025, 6, 10): AvailabilityStatus.booked,
        date(2025, 6, 11): AvailabilityStatus.available,
        date(2025, 6, 14): AvailabilityStatus.closed,
    }
    assert checker.unavailable(1, [date(2025, 6, 11)]) == {}
    assert len(checker.month_availability(1, 2025, 2)) == 28
