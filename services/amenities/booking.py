# ============================================================
# booking.py - Création de réservations (BookingCoordinator)
# ------------------------------------------------------------
# Valide une demande contre les règles de l'espace puis contre
# les créneaux calculés, et crée la réservation avec le bon
# statut initial. Ordre des contrôles :
#   1. espace connu                       → NotFoundError
#   2. date / heure / durée bien formées  → ValidationError
#   3. un résident réserve pour lui seul  → AuthorizationError
#   4. durée max, ouverture, fermeture    → CapacityError
#   5. chaque heure libre                 → ConflictError
# Les étapes 1 à 4 ne lisent aucune réservation.
# ============================================================
import logging
from contextlib import contextmanager
from datetime import datetime
from threading import Lock
from typing import Optional

from sqlalchemy.exc import IntegrityError

from availability import AvailabilityEngine
from errors import AuthorizationError, CapacityError, ConflictError, ValidationError
from models import SLOT_HOLD_CONSTRAINT, Actor, Reservation, ReservationStatus, SlotStatus
from publisher import publish_event, safe_publish
from registry import AreaRegistry
from repository import ReservationRepository
from timeslots import format_hour, parse_date, parse_hour
from workflow import ApprovalWorkflow, event_payload

logger = logging.getLogger(__name__)

# Un verrou par (espace, date) : dans un même processus, la lecture des
# créneaux et l'écriture forment un bloc. Entre processus, c'est la
# contrainte unique de slot_hold qui tranche au commit.
# Chaque entrée compte ses utilisateurs (détenteur + threads en attente)
# et disparaît quand le dernier la quitte.
_day_locks = {}
_day_locks_guard = Lock()


@contextmanager
def day_lock(area_id: int, day):
    key = (area_id, day)
    with _day_locks_guard:
        entry = _day_locks.setdefault(key, [Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _day_locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _day_locks[key]


def is_slot_collision(exc: IntegrityError) -> bool:
    # PostgreSQL nomme la contrainte, SQLite cite les colonnes de slot_hold
    message = str(exc.orig)
    return SLOT_HOLD_CONSTRAINT in message or "UNIQUE constraint failed: slot_hold." in message


class BookingCoordinator:
    def __init__(self, registry: AreaRegistry, availability: AvailabilityEngine,
                 reservations: ReservationRepository, workflow: ApprovalWorkflow, publish=publish_event):
        self.registry = registry
        self.availability = availability
        self.reservations = reservations
        self.workflow = workflow
        self.publish = publish

    def book_slot(self, area_id: int, day, start_hour: Optional[int], duration_hours: Optional[int],
                  requester_id: Optional[str], actor: Actor, now: datetime,
                  apartment_label: Optional[str] = None, requester_name: Optional[str] = None) -> Reservation:
        area = self.registry.get_area(area_id)

        day = parse_date(day)
        if start_hour is None:
            raise ValidationError("start_hour is required", field="start_hour")
        if not isinstance(start_hour, int) or isinstance(start_hour, bool) or not 0 <= start_hour <= 23:
            raise ValidationError("start_hour must be an hour between 0 and 23", field="start_hour",
                                  details={"value": start_hour})
        if not isinstance(duration_hours, int) or isinstance(duration_hours, bool) or duration_hours < 1:
            raise ValidationError("duration_hours must be a positive number of hours", field="duration_hours",
                                  details={"value": duration_hours})

        requester_id = requester_id or actor.id
        if not actor.is_manager and requester_id != actor.id:
            raise AuthorizationError("residents can only book for themselves",
                                     details={"requester_id": requester_id})

        open_hour = parse_hour(area.open_time, "open_time")
        close_hour = parse_hour(area.close_time, "close_time")
        if duration_hours > area.max_duration_hours:
            raise CapacityError(
                f"duration exceeds the {area.max_duration_hours}h maximum for {area.name}",
                field="duration_hours", details={"value": duration_hours, "max": area.max_duration_hours},
            )
        if start_hour < open_hour:
            raise CapacityError(
                f"{area.name} opens at {area.open_time}", field="start_hour",
                details={"value": start_hour, "open_time": area.open_time},
            )
        end_hour = start_hour + duration_hours
        if end_hour > close_hour:
            raise CapacityError(
                f"the booking would end after closing time ({area.close_time})", field="duration_hours",
                details={"end_time": format_hour(end_hour), "close_time": area.close_time},
            )

        hours = range(start_hour, end_hour)
        with day_lock(area.id, day):
            slots = {s.hour: s for s in self.availability.get_slots(area.id, day, now)}
            for hour in hours:
                slot = slots[hour]
                if slot.status != SlotStatus.FREE:
                    raise ConflictError(
                        f"{slot.time} is not available", field="start_hour",
                        details={"hour": hour, "time": slot.time, "status": slot.status.value,
                                 "reservation_id": slot.reservation_id},
                    )

            status = self.workflow.initial_status(area, actor)
            r = Reservation(
                area_id=area.id,
                date=day,
                start_time=format_hour(start_hour),
                end_time=format_hour(end_hour),
                requester_id=requester_id,
                requester_name=requester_name,
                apartment_label=apartment_label or ("Admin" if actor.is_manager and requester_id == actor.id else ""),
                status=status,
                viewed_by_manager=actor.is_manager,
                viewed_by_requester=requester_id == actor.id,
            )
            try:
                created = self.reservations.create_with_holds(r, hours)
            except IntegrityError as exc:
                if not is_slot_collision(exc):
                    raise
                # un autre processus a validé le même créneau entre-temps
                logger.info("booking race lost on area %s %s %s-%s", area.id, day,
                            format_hour(start_hour), format_hour(end_hour))
                raise ConflictError(
                    "the slot was taken by a concurrent booking, refresh availability and retry",
                    field="start_hour", details={"hour": start_hour, "time": format_hour(start_hour)},
                )

        logger.info("reservation %s created: area %s %s %s-%s status=%s", created.id, area.id, day,
                    created.start_time, created.end_time, created.status.value)
        event = "ReservationRequested" if created.status == ReservationStatus.PENDING else "ReservationConfirmed"
        safe_publish(self.publish, event, event_payload(created))
        return created
