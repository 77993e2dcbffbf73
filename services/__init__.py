"""Booking services and their wiring."""

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from config import Settings
from config import settings as default_settings
from db.store import Store
from db.supabase_client import SupabaseClient
from utils.logging_config import setup_logging

from .availability import AvailabilityEngine
from .booking import BookingTransaction
from .classifier import SlotClassifier
from .club_settings import ClubSettings
from .conflict_analyzer import ConflictAnalyzer
from .members import MembershipService
from .template_merger import TemplateMerger
from .templates import TemplateService

# Parent logger of every services.* module
logger = setup_logging(name=__name__)


@dataclass
class Services:
    """Every service of the booking core, sharing one store."""

    settings: Settings
    store: Store
    club_settings: ClubSettings
    classifier: SlotClassifier
    availability: AvailabilityEngine
    booking: BookingTransaction
    templates: TemplateService
    merger: TemplateMerger
    conflicts: ConflictAnalyzer
    members: MembershipService


def build_services(
    settings: Optional[Settings] = None,
    store: Optional[Store] = None,
    today: Optional[Callable[[], date]] = None,
) -> Services:
    """
    Wire the services around one store.

    Args:
        settings: Configuration, the module-level settings by default
        store: Backing store, a SupabaseClient built from `settings` by default
        today: Clock returning the club's current date (tests pin it)
    """
    settings = settings or default_settings
    store = store or SupabaseClient(settings=settings)

    club_settings = ClubSettings(store, settings)
    classifier = SlotClassifier(store, settings, today=today)
    availability = AvailabilityEngine(store, classifier, club_settings)
    booking = BookingTransaction(store, availability)
    templates = TemplateService(store)

    return Services(
        settings=settings,
        store=store,
        club_settings=club_settings,
        classifier=classifier,
        availability=availability,
        booking=booking,
        templates=templates,
        merger=TemplateMerger(store, templates),
        conflicts=ConflictAnalyzer(templates),
        members=MembershipService(store, booking),
    )


__all__ = [
    "AvailabilityEngine",
    "BookingTransaction",
    "ClubSettings",
    "ConflictAnalyzer",
    "MembershipService",
    "Services",
    "SlotClassifier",
    "TemplateMerger",
    "TemplateService",
    "build_services",
]
