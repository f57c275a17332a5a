from tourdesk.models.assignment import Assignment
from tourdesk.models.booking import Booking
from tourdesk.models.driver import Driver
from tourdesk.models.guest import Guest
from tourdesk.models.inclusion import Inclusion
from tourdesk.models.itinerary import ItineraryDay, ItineraryStop
from tourdesk.models.notification import Notification
from tourdesk.models.payment import Payment
from tourdesk.models.platform_setting import PlatformSetting
from tourdesk.models.trip_proposal import TripProposal
from tourdesk.models.user import User
from tourdesk.models.vehicle import Vehicle
from tourdesk.models.venue import Venue

__all__ = [
    "User",
    "Driver",
    "Vehicle",
    "Venue",
    "Booking",
    "Assignment",
    "TripProposal",
    "ItineraryDay",
    "ItineraryStop",
    "Guest",
    "Inclusion",
    "Payment",
    "Notification",
    "PlatformSetting",
]
