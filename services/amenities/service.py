# ============================================================
# service.py - Façade du service Amenities
# ------------------------------------------------------------
# Assemble les cinq composants sur une même Session SQLModel
# et expose les opérations appelées par l'API :
#   réservation, décisions du syndic, créneaux, notifications,
#   et gestion des espaces.
# Le publisher est injectable (tests, ou EVENTS_ENABLED=0).
# ============================================================
from datetime import datetime
from typing import Iterable, List, Optional

from sqlmodel import Session

from availability import AvailabilityEngine
from booking import BookingCoordinator
from errors import AuthorizationError
from models import Actor, Area, AreaCreate, AreaUpdate, DayOverview, FeedItem, Reservation, Slot
from notifications import NotificationProjector
from publisher import publish_event
from registry import AreaRegistry
from repository import AreaRepository, ReservationRepository
from timeslots import now_local
from workflow import ApprovalWorkflow


class AmenityService:
    def __init__(self, session: Session, publish=publish_event):
        areas = AreaRepository(session)
        reservations = ReservationRepository(session)
        self.registry = AreaRegistry(areas, publish)
        self.availability = AvailabilityEngine(self.registry, reservations)
        self.workflow = ApprovalWorkflow(reservations, publish)
        self.booking = BookingCoordinator(self.registry, self.availability, reservations, self.workflow, publish)
        self.notifications = NotificationProjector(reservations, areas)

    # --- réservations ---
    def book_slot(self, area_id: int, day, start_hour: Optional[int], duration_hours: Optional[int],
                  requester_id: Optional[str], actor: Actor, now: Optional[datetime] = None,
                  apartment_label: Optional[str] = None, requester_name: Optional[str] = None) -> Reservation:
        return self.booking.book_slot(area_id, day, start_hour, duration_hours, requester_id, actor,
                                      now_local(now), apartment_label=apartment_label,
                                      requester_name=requester_name)

    def get_reservation(self, reservation_id: int) -> Reservation:
        return self.workflow.get(reservation_id)

    def approve(self, reservation_id: int, actor: Actor) -> Reservation:
        return self.workflow.approve(reservation_id, actor)

    def reject(self, reservation_id: int, actor: Actor, reason: Optional[str]) -> Reservation:
        return self.workflow.reject(reservation_id, actor, reason)

    def cancel(self, reservation_id: int, actor: Actor, reason: Optional[str] = None) -> Optional[Reservation]:
        return self.workflow.cancel(reservation_id, actor, reason)

    def history(self, actor: Actor, now: Optional[datetime] = None, area_id: Optional[int] = None) -> List[Reservation]:
        return self.workflow.history(actor, now_local(now), area_id)

    # --- créneaux ---
    def get_slots(self, area_id: int, day, now: Optional[datetime] = None) -> List[Slot]:
        return self.availability.get_slots(area_id, day, now_local(now))

    def month_overview(self, area_id: int, year: int, month: int, now: Optional[datetime] = None) -> List[DayOverview]:
        return self.availability.month_overview(area_id, year, month, now_local(now))

    def upcoming(self, area_id: int, now: Optional[datetime] = None) -> List[Reservation]:
        return self.availability.upcoming(area_id, now_local(now))

    # --- notifications ---
    def manager_feed(self, actor: Actor, now: Optional[datetime] = None) -> List[FeedItem]:
        if not actor.is_manager:
            raise AuthorizationError("only a manager can read the manager feed")
        return self.notifications.manager_feed(now_local(now))

    def requester_feed(self, requester_id: str) -> List[FeedItem]:
        return self.notifications.requester_feed(requester_id)

    def mark_seen(self, actor: Actor, ids: Optional[Iterable[int]] = None) -> int:
        return self.notifications.mark_seen(actor, ids)

    def upcoming_confirmed_count(self, now: Optional[datetime] = None) -> int:
        return self.notifications.upcoming_confirmed_count(now_local(now))

    # --- espaces ---
    def create_area(self, data: AreaCreate, actor: Actor) -> Area:
        return self.registry.create_area(data, actor)

    def update_area(self, area_id: int, partial: AreaUpdate, actor: Actor) -> Area:
        return self.registry.update_area(area_id, partial, actor)

    def delete_area(self, area_id: int, actor: Actor, confirm: bool = False) -> int:
        return self.registry.delete_area(area_id, actor, confirm)

    def list_areas(self) -> List[Area]:
        return self.registry.list_areas()
