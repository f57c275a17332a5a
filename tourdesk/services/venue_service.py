from flask import current_app

from tourdesk.errors import NotFoundError, ValidationError
from tourdesk.extensions import cache, db
from tourdesk.models import Venue


class VenueService:
    @staticmethod
    def _cache_key(kind):
        return f"venues:{kind}"

    @staticmethod
    def directory(kind):
        if kind not in Venue.KINDS:
            raise ValidationError("Venue kind must be winery, restaurant or hotel.", field="kind")
        key = VenueService._cache_key(kind)
        rows = cache.get(key)
        if rows is None:
            venues = Venue.query.filter_by(kind=kind, is_active=True).order_by(Venue.name).all()
            rows = [
                {"id": v.id, "name": v.name, "city": v.city, "address": v.address}
                for v in venues
            ]
            cache.set(key, rows, timeout=current_app.config.get("VENUE_CACHE_TIMEOUT", 300))
        return rows

    @staticmethod
    def get_venue(kind, venue_id):
        venue = db.session.get(Venue, venue_id)
        if not venue or not venue.is_active:
            raise NotFoundError(f"{kind.title()} not found.")
        if venue.kind != kind:
            raise ValidationError(f"Venue {venue.name} is a {venue.kind}, not a {kind}.", field="venue_id")
        return venue

    @staticmethod
    def create_venue(kind, name, city=None, address=None):
        if kind not in Venue.KINDS:
            raise ValidationError("Venue kind must be winery, restaurant or hotel.", field="kind")
        name = (name or "").strip()
        if not name:
            raise ValidationError("Venue name is required.", field="name")
        venue = Venue(
            kind=kind,
            name=name,
            city=(city or "").strip() or None,
            address=(address or "").strip() or None,
        )
        db.session.add(venue)
        db.session.commit()
        cache.delete(VenueService._cache_key(kind))
        return venue
