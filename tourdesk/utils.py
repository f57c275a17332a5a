"""Time, money and party-size helpers shared by the pricing, itinerary and scheduling services."""

from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from zoneinfo import ZoneInfo

from sqlalchemy import func

from tourdesk.errors import ValidationError
from tourdesk.extensions import db

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def day_count(start_date, end_date):
    return max(1, (end_date - start_date).days + 1)


def date_range(start_date, end_date):
    return [start_date + timedelta(days=i) for i in range(day_count(start_date, end_date))]


def week_bounds(day):
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def parse_date(value, field="date"):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value or "").strip())
    except ValueError as exc:
        raise ValidationError("Dates must use the YYYY-MM-DD format.", field=field) from exc


def parse_time(value, field="time"):
    if isinstance(value, time):
        return value
    raw = str(value or "").strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise ValidationError("Times must use the HH:MM format.", field=field)


def parse_decimal(value, field, minimum=Decimal("0"), maximum=None, default=None):
    if value is None or value == "":
        if default is None:
            raise ValidationError(f"{field} is required.", field=field)
        value = default
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field} must be a number.", field=field) from exc
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number.", field=field)
    if minimum is not None and amount < minimum:
        raise ValidationError(f"{field} must be at least {minimum}.", field=field)
    if maximum is not None and amount > maximum:
        raise ValidationError(f"{field} must be at most {maximum}.", field=field)
    return amount


def parse_party_size(value, maximum=None):
    try:
        party_size = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Party size must be a whole number.", field="party_size") from exc
    if party_size <= 0:
        raise ValidationError("Party size must be at least 1.", field="party_size")
    if maximum is not None and party_size > maximum:
        raise ValidationError(f"Party size cannot exceed {maximum}.", field="party_size")
    return party_size


def hours_between(start_time, end_time):
    """Length of a same-day window in hours."""
    start_minutes = start_time.hour * 60 + start_time.minute
    end_minutes = end_time.hour * 60 + end_time.minute
    return Decimal(end_minutes - start_minutes) / Decimal(60)


def duration_minutes(duration_hours):
    return int((Decimal(str(duration_hours)) * 60).to_integral_value(rounding=ROUND_HALF_UP))


def time_window(day, start_time, duration_hours):
    start = datetime.combine(day, start_time)
    return start, start + timedelta(minutes=duration_minutes(duration_hours))


def add_minutes(start_time, minutes):
    return (datetime.combine(date.min, start_time) + timedelta(minutes=minutes)).time()


def windows_overlap(a_start, a_end, b_start, b_end):
    # Half-open windows: touching boundaries do not overlap.
    return a_start < b_end and b_start < a_end


def to_cents(value, field="amount"):
    try:
        amount = Decimal(str(value if value is not None else 0))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field} must be a number.", field=field) from exc
    return int((amount * HUNDRED).to_integral_value(rounding=ROUND_HALF_UP))


def cents_to_decimal(cents):
    return (Decimal(cents) / HUNDRED).quantize(CENT)


def percent_of(cents, percentage):
    share = Decimal(cents) * Decimal(str(percentage)) / HUNDRED
    return int(share.to_integral_value(rounding=ROUND_HALF_UP))


def format_currency(cents):
    sign = "-" if cents < 0 else ""
    return f"{sign}${cents_to_decimal(abs(cents)):,.2f}"


def utcnow():
    return datetime.now(timezone.utc)


def business_zone(tz_name):
    return ZoneInfo(tz_name)


def local_date(now, tz_name):
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(business_zone(tz_name)).date()


def localize(day, at_time, tz_name):
    return datetime.combine(day, at_time, tzinfo=business_zone(tz_name))


def generate_document_number(column, code):
    today = utcnow().strftime("%Y%m%d")
    prefix = f"{code}-{today}-"
    count_today = db.session.query(func.count()).filter(column.like(f"{prefix}%")).scalar() + 1
    return f"{prefix}{count_today:04d}"
