# ============================================================
# notifications.py - Flux de notifications (NotificationProjector)
# ------------------------------------------------------------
# Dérive à la demande deux flux en lecture seule à partir de
# l'état courant des réservations :
#   - syndic   : demandes en attente (urgentes) + non vues
#   - résident : décisions (approuvée / rejetée) non vues
# Aucun stockage à part : les accusés de lecture sont les
# drapeaux viewed_by_manager / viewed_by_requester.
# ============================================================
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from errors import AuthorizationError, NotFoundError
from models import Actor, FeedItem, Reservation, ReservationStatus
from repository import AreaRepository, ReservationRepository
from timeslots import ends_at, to_local

logger = logging.getLogger(__name__)


class NotificationProjector:
    def __init__(self, reservations: ReservationRepository, areas: AreaRepository):
        self.reservations = reservations
        self.areas = areas

    def manager_feed(self, now: datetime) -> List[FeedItem]:
        local = to_local(now)
        rows = [r for r in self.reservations.query()
                if r.status == ReservationStatus.PENDING or not r.viewed_by_manager]
        names = self._area_names(rows)
        return [
            FeedItem(
                reservation_id=r.id,
                title="Pending reservation" if r.status == ReservationStatus.PENDING else "New reservation",
                description=f"{names.get(r.area_id, '?')} - {r.date.isoformat()} (Apt {r.apartment_label or '-'})",
                status=r.status,
                urgent=r.status == ReservationStatus.PENDING,
                expired=ends_at(r.date, r.end_time) < local,
            )
            for r in rows
        ]

    def requester_feed(self, requester_id: str) -> List[FeedItem]:
        rows = self._unseen_decisions(requester_id)
        names = self._area_names(rows)
        items = []
        for r in rows:
            if r.status == ReservationStatus.REJECTED and r.rejection_reason:
                description = f"Cancelled: {r.rejection_reason}"
            else:
                description = f"Your reservation of {names.get(r.area_id, '?')} for {r.date.isoformat()} was updated."
            items.append(FeedItem(
                reservation_id=r.id,
                title="Reservation approved" if r.status == ReservationStatus.CONFIRMED else "Reservation rejected",
                description=description,
                status=r.status,
            ))
        return items

    # Marque comme vus ; sans ids, tout ce qui figure dans le flux de l'acteur.
    # Idempotent : renvoie le nombre de réservations effectivement modifiées.
    def mark_seen(self, actor: Actor, ids: Optional[Iterable[int]] = None) -> int:
        flag = "viewed_by_manager" if actor.is_manager else "viewed_by_requester"
        if ids is None:
            if actor.is_manager:
                rows = self.reservations.query()
            else:
                rows = self.reservations.query(requester_id=actor.id)
        else:
            ids = list(dict.fromkeys(ids))
            rows = self.reservations.by_ids(ids)
            missing = set(ids) - {r.id for r in rows}
            if missing:
                raise NotFoundError("reservation not found", field="ids", details={"ids": sorted(missing)})
            if not actor.is_manager:
                foreign = [r.id for r in rows if r.requester_id != actor.id]
                if foreign:
                    raise AuthorizationError("residents can only acknowledge their own reservations",
                                             field="ids", details={"ids": sorted(foreign)})
        changed = [r for r in rows if not getattr(r, flag)]
        if changed:
            self.reservations.update_many(changed, {flag: True})
            logger.debug("%s marked %d reservation(s) as seen", actor.id, len(changed))
        return len(changed)

    # Compteur du tableau de bord : réservations confirmées à partir d'aujourd'hui
    def upcoming_confirmed_count(self, now: datetime) -> int:
        today = to_local(now).date()
        return sum(1 for r in self.reservations.query(statuses=(ReservationStatus.CONFIRMED,)) if r.date >= today)

    def _unseen_decisions(self, requester_id: str) -> List[Reservation]:
        return [r for r in self.reservations.query(requester_id=requester_id)
                if not r.viewed_by_requester and r.status != ReservationStatus.PENDING]

    def _area_names(self, rows: List[Reservation]) -> dict:
        return {area_id: a.name for area_id, a in self.areas.by_ids(r.area_id for r in rows).items()}
