from tourdesk.services.assignment_service import AssignmentService
from tourdesk.services.auth_service import AuthService
from tourdesk.services.availability_service import AvailabilityService
from tourdesk.services.booking_service import BookingService
from tourdesk.services.fleet_service import FleetService
from tourdesk.services.itinerary_service import ItineraryBuilder
from tourdesk.services.notification_service import NotificationService
from tourdesk.services.payment_service import PaymentService
from tourdesk.services.platform_service import PlatformService
from tourdesk.services.pricing_service import PricingService
from tourdesk.services.proposal_service import ProposalService
from tourdesk.services.venue_service import VenueService

__all__ = [
    "AssignmentService",
    "AuthService",
    "AvailabilityService",
    "BookingService",
    "FleetService",
    "ItineraryBuilder",
    "NotificationService",
    "PaymentService",
    "PlatformService",
    "PricingService",
    "ProposalService",
    "VenueService",
]
