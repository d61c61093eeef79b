# ============================================================
# availability.py - Calcul des créneaux (AvailabilityEngine)
# ------------------------------------------------------------
# Pour un espace et une date, renvoie le statut de chaque heure
# pleine entre l'ouverture et la fermeture :
#   free | pending_hold | confirmed_hold | past
# Parcours linéaire des réservations du jour pour chaque heure :
# O(créneaux × réservations du jour), suffisant à quelques
# réservations par espace et par jour.
# "now" est toujours fourni par l'appelant, jamais lu ici.
# ============================================================
import calendar
from datetime import MAXYEAR, MINYEAR, date, datetime
from typing import List

from errors import ValidationError
from models import DayOverview, Reservation, ReservationStatus, Slot, SlotStatus
from registry import AreaRegistry
from repository import ReservationRepository
from timeslots import ends_at, format_hour, parse_date, parse_hour, starts_at, to_local


def slot_status(hour: int, day: date, reservations: List[Reservation], now: datetime):
    local = to_local(now)
    # le passé l'emporte sur tout le reste
    if day < local.date() or (day == local.date() and hour <= local.hour):
        return SlotStatus.PAST, None
    for r in reservations:
        if r.status == ReservationStatus.REJECTED:
            continue
        if r.covers(hour):
            if r.status == ReservationStatus.PENDING:
                return SlotStatus.PENDING_HOLD, r.id
            return SlotStatus.CONFIRMED_HOLD, r.id
    return SlotStatus.FREE, None


class AvailabilityEngine:
    def __init__(self, registry: AreaRegistry, reservations: ReservationRepository):
        self.registry = registry
        self.reservations = reservations

    def get_slots(self, area_id: int, day, now: datetime) -> List[Slot]:
        area = self.registry.get_area(area_id)
        day = parse_date(day)
        rows = self.reservations.for_area_day(area.id, day)
        slots = []
        for hour in range(parse_hour(area.open_time, "open_time"), parse_hour(area.close_time, "close_time")):
            status, reservation_id = slot_status(hour, day, rows, now)
            slots.append(Slot(hour=hour, time=format_hour(hour), status=status, reservation_id=reservation_id))
        return slots

    # Vue mensuelle : un point par jour ayant au moins une réservation active
    def month_overview(self, area_id: int, year: int, month: int, now: datetime) -> List[DayOverview]:
        area = self.registry.get_area(area_id)
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12", field="month", details={"value": month})
        if not MINYEAR <= year <= MAXYEAR:
            raise ValidationError(f"year must be between {MINYEAR} and {MAXYEAR}", field="year",
                                  details={"value": year})
        last_day = calendar.monthrange(year, month)[1]
        first, last = date(year, month, 1), date(year, month, last_day)
        booked = {r.date for r in self.reservations.for_area_between(area.id, first, last)}
        today = to_local(now).date()
        return [
            DayOverview(date=d, has_booking=d in booked, is_past=d < today)
            for d in (date(year, month, n) for n in range(1, last_day + 1))
        ]

    # Prochaines réservations actives de l'espace (fin après "now")
    def upcoming(self, area_id: int, now: datetime) -> List[Reservation]:
        area = self.registry.get_area(area_id)
        local = to_local(now)
        rows = self.reservations.query(area_id=area.id, statuses=(ReservationStatus.PENDING, ReservationStatus.CONFIRMED))
        rows = [r for r in rows if ends_at(r.date, r.end_time) > local]
        return sorted(rows, key=lambda r: starts_at(r.date, r.start_time))
