"""View-state controllers."""

from .dashboard import DashboardController, DashboardTab
from .events import EventDetailController, EventListController
from .help_requests import HelpRequestDetailController, HelpRequestListController
from .registration import RegistrationLedger, VolunteerStats

__all__ = [
    "DashboardController",
    "DashboardTab",
    "EventDetailController",
    "EventListController",
    "HelpRequestDetailController",
    "HelpRequestListController",
    "RegistrationLedger",
    "VolunteerStats",
]
