import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence
from app.errors import NotFoundError, ValidationError
from app.models.room import EquipmentPriceType
from app.repositories.pricing import PricingRepository

logger = logging.getLogger(__name__)


def round_yen(value) -> int:
    """Round half up to whole yen."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def ticket_multiplier(entrance_fee_amount: int) -> float:
    """Room charge multiplier for events that charge admission.

    - free: 1.0x
    - 1-3000 yen: 1.5x
    - 3001+ yen: 2.0x
    """
    if entrance_fee_amount <= 0:
        return 1.0
    if entrance_fee_amount <= 3000:
        return 1.5
    return 2.0


@dataclass
class EquipmentRequest:
    equipment_id: int
    quantity: int = 1


@dataclass
class AddOns:
    ac_hours: float = 0
    equipment: List[EquipmentRequest] = field(default_factory=list)


@dataclass
class EquipmentLine:
    equipment_id: int
    quantity: int
    line_amount: int


@dataclass
class UsageCharge:
    usage_date: date
    room_charge: int
    equipment_charge: int
    ac_charge: int
    equipment_lines: List[EquipmentLine] = field(default_factory=list)

    @property
    def subtotal(self) -> int:
        return self.room_charge + self.equipment_charge + self.ac_charge


@dataclass
class PriceQuote:
    room_id: int
    time_slot_id: int
    ticket_multiplier: float
    lines: List[UsageCharge]

    @property
    def total(self) -> int:
        return sum(line.subtotal for line in self.lines)


class PricingCalculator:
    def __init__(self, repository: PricingRepository):
        self.repository = repository

    def compute_total(
        self,
        room_id: int,
        dates: Sequence[date],
        time_slot_id: int,
        add_ons: Optional[AddOns] = None,
        entrance_fee_amount: int = 0,
    ) -> PriceQuote:
        """Price one usage per date from the room's slot price table.

        The entrance-fee multiplier applies to the room charge only; equipment
        and air conditioning are charged at their own rates.
        """
        add_ons = add_ons or AddOns()
        if add_ons.ac_hours < 0:
            raise ValidationError("AC hours cannot be negative")

        price = self.repository.get_slot_price(room_id, time_slot_id)
        if price is None:
            logger.error(f"No price for room_id: {room_id}, time_slot_id: {time_slot_id}")
            raise ValidationError(f"Time slot {time_slot_id} is not offered for room {room_id}")

        multiplier = ticket_multiplier(entrance_fee_amount)
        room_charge = round_yen(price.base_price * multiplier)
        ac_charge = round_yen(add_ons.ac_hours * price.ac_price_per_hour)
        equipment_lines = self._equipment_lines(add_ons.equipment)
        equipment_charge = sum(line.line_amount for line in equipment_lines)

        lines = [
            UsageCharge(
                usage_date=day,
                room_charge=room_charge,
                equipment_charge=equipment_charge,
                ac_charge=ac_charge,
                equipment_lines=list(equipment_lines),
            )
            for day in sorted(dates)
        ]
        quote = PriceQuote(room_id=room_id, time_slot_id=time_slot_id, ticket_multiplier=multiplier, lines=lines)
        logger.debug(f"Priced room_id: {room_id}, {len(lines)} dates, total: {quote.total}")
        return quote

    def actual_ac_charge(self, room_id: int, time_slot_id: int, ac_hours: float) -> int:
        """Charge for AC hours actually used; billed apart from the reservation total."""
        if ac_hours < 0:
            raise ValidationError("AC hours cannot be negative")
        price = self.repository.get_slot_price(room_id, time_slot_id)
        if price is None:
            raise ValidationError(f"Time slot {time_slot_id} is not offered for room {room_id}")
        return round_yen(ac_hours * price.ac_price_per_hour)

    def _equipment_lines(self, requests: List[EquipmentRequest]) -> List[EquipmentLine]:
        if not requests:
            return []
        items = self.repository.get_equipment(request.equipment_id for request in requests)
        lines = []
        for request in requests:
            item = items.get(request.equipment_id)
            if item is None:
                raise NotFoundError(f"Equipment ID {request.equipment_id} not found")
            if not item.enabled:
                raise ValidationError(f"Equipment \"{item.name}\" is not available")
            if request.quantity < 1:
                raise ValidationError(f"Equipment \"{item.name}\" quantity must be at least 1")
            if request.quantity > item.max_quantity:
                raise ValidationError(
                    f"Equipment \"{item.name}\" quantity exceeds maximum ({item.max_quantity})"
                )

            if item.price_type == EquipmentPriceType.per_slot:
                amount = item.unit_price * request.quantity
            elif item.price_type == EquipmentPriceType.flat:
                amount = item.unit_price
            else:
                amount = 0
            lines.append(EquipmentLine(equipment_id=item.id, quantity=request.quantity, line_amount=amount))
        return lines
