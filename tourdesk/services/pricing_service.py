from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from tourdesk.errors import ValidationError
from tourdesk.utils import cents_to_decimal, format_currency, parse_decimal, parse_party_size, percent_of, to_cents


@dataclass(frozen=True)
class Totals:
    """Trip price breakdown in integer cents."""

    stops_total: int
    inclusions_total: int
    subtotal: int
    discount: int
    after_discount: int
    taxes: int
    gratuity: int
    total: int
    deposit: int
    balance: int
    warnings: tuple = ()

    AMOUNT_FIELDS = (
        "stops_total",
        "inclusions_total",
        "subtotal",
        "discount",
        "after_discount",
        "taxes",
        "gratuity",
        "total",
        "deposit",
        "balance",
    )

    def amounts(self):
        return {name: cents_to_decimal(getattr(self, name)) for name in self.AMOUNT_FIELDS}

    def to_dict(self):
        payload = {name: str(value) for name, value in self.amounts().items()}
        payload["formatted"] = {name: format_currency(getattr(self, name)) for name in self.AMOUNT_FIELDS}
        payload["warnings"] = list(self.warnings)
        return payload


class PricingService:
    @staticmethod
    def stop_cost(stop, party_size):
        flat = to_cents(stop.flat_cost, "flat_cost")
        per_person = to_cents(stop.per_person_cost, "per_person_cost")
        if flat < 0 or per_person < 0:
            raise ValidationError("Stop costs cannot be negative.", field="stop_cost")
        return flat + per_person * party_size

    @staticmethod
    def inclusion_cost(inclusion):
        quantity = Decimal(str(inclusion.quantity if inclusion.quantity is not None else 0))
        unit_price = to_cents(inclusion.unit_price, "unit_price")
        if quantity < 0 or unit_price < 0:
            raise ValidationError("Inclusion quantity and price cannot be negative.", field="inclusions")
        return int((quantity * unit_price).to_integral_value(rounding=ROUND_HALF_UP))

    @staticmethod
    def stops_of(days):
        return [stop for day in days for stop in day.stops]

    @staticmethod
    def compute_totals(
        stops,
        inclusions,
        party_size,
        discount_amount=0,
        tax_rate_pct=0,
        gratuity_pct=0,
        deposit_pct=0,
    ):
        party_size = parse_party_size(party_size)
        tax_rate = parse_decimal(tax_rate_pct, "tax_rate", default="0")
        gratuity_rate = parse_decimal(gratuity_pct, "gratuity_percentage", default="0")
        deposit_rate = parse_decimal(deposit_pct, "deposit_percentage", maximum=Decimal("100"), default="0")
        discount = to_cents(parse_decimal(discount_amount, "discount_amount", default="0"))

        stops_total = sum(PricingService.stop_cost(stop, party_size) for stop in stops)
        inclusions_total = sum(PricingService.inclusion_cost(item) for item in inclusions)
        subtotal = stops_total + inclusions_total

        warnings = []
        if discount > subtotal:
            warnings.append(
                f"Discount of {format_currency(discount)} exceeds subtotal of "
                f"{format_currency(subtotal)}; clamped to the subtotal."
            )
            discount = subtotal
        after_discount = subtotal - discount

        taxes = percent_of(after_discount, tax_rate)
        gratuity = percent_of(after_discount, gratuity_rate)
        total = after_discount + taxes + gratuity
        deposit = percent_of(total, deposit_rate)

        return Totals(
            stops_total=stops_total,
            inclusions_total=inclusions_total,
            subtotal=subtotal,
            discount=discount,
            after_discount=after_discount,
            taxes=taxes,
            gratuity=gratuity,
            total=total,
            deposit=deposit,
            balance=total - deposit,
            warnings=tuple(warnings),
        )
