from dataclasses import dataclass, replace
from datetime import time, timedelta
from decimal import Decimal
from typing import Optional

from tourdesk.errors import ValidationError
from tourdesk.utils import day_count, parse_date, parse_decimal, parse_party_size, parse_time

STOP_TYPES = ("pickup", "dropoff", "winery", "restaurant", "hotel", "activity", "custom")
VENUE_STOP_TYPES = frozenset({"winery", "restaurant", "hotel"})
RESERVATION_STATUSES = ("pending", "confirmed", "n/a")
INCLUSION_TYPES = ("transportation", "chauffeur", "gratuity", "custom")
DEFAULT_STOP_MINUTES = 60


@dataclass(frozen=True)
class StopDraft:
    """One itinerary event.

    Winery, restaurant and hotel stops point at a venue; every other stop type
    carries its own name and address. The two modes never coexist.
    """

    stop_type: str
    stop_order: int = 1
    venue_id: Optional[int] = None
    custom_name: Optional[str] = None
    custom_address: Optional[str] = None
    scheduled_time: Optional[time] = None
    duration_minutes: int = DEFAULT_STOP_MINUTES
    per_person_cost: Decimal = Decimal("0")
    flat_cost: Decimal = Decimal("0")
    reservation_status: str = "pending"
    notes: Optional[str] = None

    def __post_init__(self):
        if self.stop_type not in STOP_TYPES:
            raise ValidationError(f"Unknown stop type: {self.stop_type}.", field="stop_type")
        if self.is_venue_stop and (self.custom_name or self.custom_address):
            raise ValidationError(
                f"A {self.stop_type} stop references a venue, not a custom name or address.", field="custom_name"
            )
        if not self.is_venue_stop and self.venue_id is not None:
            raise ValidationError(f"A {self.stop_type} stop cannot reference a venue.", field="venue_id")
        if self.per_person_cost < 0 or self.flat_cost < 0:
            raise ValidationError("Stop costs cannot be negative.", field="stop_cost")
        if self.duration_minutes <= 0:
            raise ValidationError("Stop duration must be positive.", field="duration_minutes")
        if self.reservation_status not in RESERVATION_STATUSES:
            raise ValidationError("Invalid reservation status.", field="reservation_status")

    @property
    def is_venue_stop(self):
        return self.stop_type in VENUE_STOP_TYPES

    def with_venue(self, venue_id):
        if not self.is_venue_stop:
            raise ValidationError(f"A {self.stop_type} stop cannot reference a venue.", field="venue_id")
        return replace(self, venue_id=venue_id, custom_name=None, custom_address=None)

    def with_custom(self, name, address=None):
        if self.is_venue_stop:
            raise ValidationError(f"A {self.stop_type} stop must reference a venue.", field="custom_name")
        return replace(self, venue_id=None, custom_name=name, custom_address=address)

    def with_type(self, stop_type):
        if stop_type == self.stop_type:
            return self
        # A venue id is only meaningful for the venue kind it was chosen for.
        return replace(self, stop_type=stop_type, venue_id=None, custom_name=None, custom_address=None)


@dataclass(frozen=True)
class DayDraft:
    day_number: int
    date: object
    title: str
    notes: Optional[str] = None
    stops: tuple = ()


@dataclass(frozen=True)
class GuestDraft:
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    dietary_restrictions: Optional[str] = None
    is_primary: bool = False


@dataclass(frozen=True)
class InclusionDraft:
    inclusion_type: str
    description: str
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = Decimal("0")

    def __post_init__(self):
        if self.inclusion_type not in INCLUSION_TYPES:
            raise ValidationError(f"Unknown inclusion type: {self.inclusion_type}.", field="inclusion_type")
        if self.quantity < 0 or self.unit_price < 0:
            raise ValidationError("Inclusion quantity and price cannot be negative.", field="inclusions")

    @property
    def total_price(self):
        return (self.quantity * self.unit_price).quantize(Decimal("0.01"))


@dataclass(frozen=True)
class ItineraryDraft:
    start_date: object
    end_date: object
    party_size: int
    days: tuple
    guests: tuple = ()
    inclusions: tuple = ()

    @property
    def stops(self):
        return [stop for day in self.days for stop in day.stops]


def derive_days(start_date, end_date, existing_days=()):
    """Lay out one day per date in the range, keeping what is already planned.

    Days at an index that survives the new range keep their title, notes and
    stops; only their date and number follow the range.
    """
    if end_date < start_date:
        raise ValidationError("End date cannot be before start date.", field="end_date")
    existing_days = tuple(existing_days)
    days = []
    for index in range(day_count(start_date, end_date)):
        number = index + 1
        day_date = start_date + timedelta(days=index)
        if index < len(existing_days):
            days.append(replace(existing_days[index], day_number=number, date=day_date))
        else:
            days.append(DayDraft(day_number=number, date=day_date, title=f"Day {number}"))
    return tuple(days)


def renumber_stops(stops):
    return tuple(replace(stop, stop_order=position) for position, stop in enumerate(stops, start=1))


def check_stop_order(day):
    orders = [stop.stop_order for stop in day.stops]
    if orders != list(range(1, len(orders) + 1)):
        raise ValidationError(f"Stops on day {day.day_number} are not in contiguous order.", field="stop_order")
    return day


def _day_at(days, day_index):
    if not 0 <= day_index < len(days):
        raise ValidationError(f"There is no day at position {day_index + 1}.", field="day_index")
    return days[day_index]


def _with_day(days, day_index, day):
    days = list(days)
    days[day_index] = day
    return tuple(days)


def add_stop(days, day_index, stop_type):
    day = _day_at(days, day_index)
    stop = StopDraft(stop_type=stop_type, stop_order=len(day.stops) + 1)
    return _with_day(days, day_index, replace(day, stops=day.stops + (stop,))), stop


def update_stop(days, day_index, stop_index, **changes):
    day = _day_at(days, day_index)
    if not 0 <= stop_index < len(day.stops):
        raise ValidationError(f"There is no stop at position {stop_index + 1}.", field="stop_index")
    stops = list(day.stops)
    stops[stop_index] = replace(stops[stop_index], **changes)
    return _with_day(days, day_index, replace(day, stops=tuple(stops)))


def remove_stop(days, day_index, stop_index):
    day = _day_at(days, day_index)
    if not 0 <= stop_index < len(day.stops):
        raise ValidationError(f"There is no stop at position {stop_index + 1}.", field="stop_index")
    remaining = day.stops[:stop_index] + day.stops[stop_index + 1 :]
    return _with_day(days, day_index, replace(day, stops=renumber_stops(remaining)))


def move_stop(days, day_index, from_index, to_index):
    day = _day_at(days, day_index)
    if not (0 <= from_index < len(day.stops) and 0 <= to_index < len(day.stops)):
        raise ValidationError("Stop position out of range.", field="stop_index")
    stops = list(day.stops)
    stops.insert(to_index, stops.pop(from_index))
    return _with_day(days, day_index, replace(day, stops=renumber_stops(stops)))


class ItineraryBuilder:
    def __init__(self, start_date, end_date, party_size, max_party_size=None):
        self.party_size = parse_party_size(party_size, maximum=max_party_size)
        self.start_date = start_date
        self.end_date = end_date
        self.days = derive_days(start_date, end_date)
        self.guests = []
        self.inclusions = []

    def set_dates(self, start_date, end_date):
        self.days = derive_days(start_date, end_date, self.days)
        self.start_date = start_date
        self.end_date = end_date
        return self.days

    def use_days(self, days):
        self.days = derive_days(self.start_date, self.end_date, days)
        return self.days

    def set_day_details(self, day_index, title=None, notes=None):
        day = _day_at(self.days, day_index)
        self.days = _with_day(
            self.days,
            day_index,
            replace(day, title=(title or "").strip() or day.title, notes=notes),
        )

    def add_stop(self, day_index, stop_type, **fields):
        self.days, stop = add_stop(self.days, day_index, stop_type)
        if fields:
            self.days = update_stop(self.days, day_index, len(self.days[day_index].stops) - 1, **fields)
        return self.days[day_index].stops[-1]

    def remove_stop(self, day_index, stop_index):
        self.days = remove_stop(self.days, day_index, stop_index)

    def move_stop(self, day_index, from_index, to_index):
        self.days = move_stop(self.days, day_index, from_index, to_index)

    def add_guest(self, name, email=None, phone=None, dietary_restrictions=None, is_primary=False):
        name = (name or "").strip()
        if not name:
            raise ValidationError("Guest name is required.", field="guests")
        guest = GuestDraft(
            name=name,
            email=(email or "").strip().lower() or None,
            phone=(phone or "").strip() or None,
            dietary_restrictions=(dietary_restrictions or "").strip() or None,
            is_primary=bool(is_primary),
        )
        self.guests.append(guest)
        return guest

    def add_inclusion(self, inclusion_type, description, quantity=1, unit_price=0):
        inclusion = InclusionDraft(
            inclusion_type=inclusion_type,
            description=(description or "").strip() or inclusion_type.title(),
            quantity=parse_decimal(quantity, "quantity", default="1"),
            unit_price=parse_decimal(unit_price, "unit_price", default="0"),
        )
        self.inclusions.append(inclusion)
        return inclusion

    def build(self):
        """Validate the whole itinerary and freeze it."""
        expected = derive_days(self.start_date, self.end_date, self.days)
        if expected != self.days:
            raise ValidationError("Itinerary days do not match the trip dates.", field="days")
        for day in self.days:
            check_stop_order(day)
            for stop in day.stops:
                if stop.is_venue_stop and stop.venue_id is None:
                    raise ValidationError(
                        f"Choose a {stop.stop_type} for stop {stop.stop_order} on day {day.day_number}.",
                        field="venue_id",
                    )
        if sum(1 for guest in self.guests if guest.is_primary) > 1:
            raise ValidationError("Only one guest can be the primary contact.", field="guests")
        return ItineraryDraft(
            start_date=self.start_date,
            end_date=self.end_date,
            party_size=self.party_size,
            days=self.days,
            guests=tuple(self.guests),
            inclusions=tuple(self.inclusions),
        )

    @classmethod
    def from_payload(cls, payload, max_party_size=None):
        start_date = parse_date(payload.get("start_date"), "start_date")
        end_date = parse_date(payload.get("end_date") or payload.get("start_date"), "end_date")
        if end_date < start_date:
            raise ValidationError("End date cannot be before start date.", field="end_date")
        builder = cls(start_date, end_date, payload.get("party_size"), max_party_size=max_party_size)

        for day_index, raw_day in enumerate((payload.get("days") or [])[: len(builder.days)]):
            builder.set_day_details(day_index, raw_day.get("title"), (raw_day.get("notes") or "").strip() or None)
            for raw_stop in raw_day.get("stops") or []:
                builder.add_stop(day_index, raw_stop.get("stop_type"), **_stop_fields(raw_stop))

        for raw_guest in payload.get("guests") or []:
            builder.add_guest(
                raw_guest.get("name"),
                email=raw_guest.get("email"),
                phone=raw_guest.get("phone"),
                dietary_restrictions=raw_guest.get("dietary_restrictions"),
                is_primary=raw_guest.get("is_primary", False),
            )

        raw_inclusions = payload.get("inclusions")
        if raw_inclusions is None:
            raw_inclusions = [
                {"inclusion_type": "transportation", "description": "Luxury transportation"},
                {"inclusion_type": "chauffeur", "description": "Professional chauffeur"},
            ]
        for raw_inclusion in raw_inclusions:
            builder.add_inclusion(
                raw_inclusion.get("inclusion_type") or "custom",
                raw_inclusion.get("description"),
                quantity=raw_inclusion.get("quantity", 1),
                unit_price=raw_inclusion.get("unit_price", 0),
            )
        return builder


def _stop_fields(raw_stop):
    fields = {
        "duration_minutes": int(
            parse_decimal(raw_stop.get("duration_minutes"), "duration_minutes", default=str(DEFAULT_STOP_MINUTES))
        ),
        "per_person_cost": parse_decimal(raw_stop.get("per_person_cost"), "per_person_cost", default="0"),
        "flat_cost": parse_decimal(raw_stop.get("flat_cost"), "flat_cost", default="0"),
        "reservation_status": raw_stop.get("reservation_status") or "pending",
        "notes": (raw_stop.get("notes") or "").strip() or None,
    }
    if raw_stop.get("scheduled_time"):
        fields["scheduled_time"] = parse_time(raw_stop["scheduled_time"], "scheduled_time")
    if raw_stop.get("venue_id") is not None:
        fields["venue_id"] = int(parse_decimal(raw_stop["venue_id"], "venue_id"))
    if raw_stop.get("custom_name") or raw_stop.get("custom_address"):
        fields["custom_name"] = (raw_stop.get("custom_name") or "").strip() or None
        fields["custom_address"] = (raw_stop.get("custom_address") or "").strip() or None
    return fields
