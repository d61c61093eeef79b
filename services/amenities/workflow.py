# ============================================================
# workflow.py - Machine à états des réservations (ApprovalWorkflow)
# ------------------------------------------------------------
# États : pending, confirmed, rejected (terminal).
#   approve : pending → confirmed                     (syndic)
#   reject  : pending | confirmed → rejected, motif    (syndic)
#   cancel  : le demandeur supprime sa réservation ;
#             le syndic qui annule = reject (motif exigé)
# Toute décision remet viewed_by_requester à False pour que le
# résident soit notifié, et un rejet libère le créneau aussitôt.
# ============================================================
import logging
from datetime import datetime
from typing import List, Optional

from errors import AuthorizationError, NotFoundError, TransitionError, ValidationError
from models import Actor, Area, Reservation, ReservationStatus
from publisher import publish_event, safe_publish
from repository import ReservationRepository
from timeslots import ends_at, starts_at, to_local

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 300

# Transitions permises, hors suppression par le demandeur
TRANSITIONS = {
    ReservationStatus.PENDING: {ReservationStatus.CONFIRMED, ReservationStatus.REJECTED},
    ReservationStatus.CONFIRMED: {ReservationStatus.REJECTED},
    ReservationStatus.REJECTED: set(),
}


def event_payload(r: Reservation) -> dict:
    return {
        "reservationId": r.id,
        "areaId": r.area_id,
        "date": r.date.isoformat(),
        "startTime": r.start_time,
        "endTime": r.end_time,
        "requesterId": r.requester_id,
        "status": r.status.value,
        "reason": r.rejection_reason,
    }


class ApprovalWorkflow:
    def __init__(self, reservations: ReservationRepository, publish=publish_event):
        self.reservations = reservations
        self.publish = publish

    # Règle de statut initial : confirmée d'office si le syndic réserve
    # ou si l'espace n'exige pas de validation.
    @staticmethod
    def initial_status(area: Area, actor: Actor) -> ReservationStatus:
        if actor.is_manager or not area.requires_approval:
            return ReservationStatus.CONFIRMED
        return ReservationStatus.PENDING

    def get(self, reservation_id: int) -> Reservation:
        r = self.reservations.get(reservation_id)
        if not r:
            raise NotFoundError("reservation not found", field="reservation_id",
                                details={"reservation_id": reservation_id})
        return r

    def approve(self, reservation_id: int, actor: Actor) -> Reservation:
        self._require_manager(actor, "approve")
        r = self.get(reservation_id)
        self._check_transition(r, ReservationStatus.CONFIRMED)
        r = self.reservations.update(r, {
            "status": ReservationStatus.CONFIRMED,
            "viewed_by_requester": False,
            "viewed_by_manager": True,
        })
        logger.info("reservation %s approved by %s", r.id, actor.id)
        safe_publish(self.publish, "ReservationApproved", event_payload(r))
        return r

    def reject(self, reservation_id: int, actor: Actor, reason: Optional[str]) -> Reservation:
        self._require_manager(actor, "reject")
        reason = self._clean_reason(reason)
        r = self.get(reservation_id)
        self._check_transition(r, ReservationStatus.REJECTED)
        previous = r.status
        r = self.reservations.update(r, {
            "status": ReservationStatus.REJECTED,
            "rejection_reason": reason,
            "viewed_by_requester": False,
            "viewed_by_manager": True,
        }, release_holds=True)
        logger.info("reservation %s rejected by %s (was %s)", r.id, actor.id, previous.value)
        safe_publish(self.publish, "ReservationRejected", event_payload(r))
        return r

    # Renvoie None quand la réservation a été supprimée par son demandeur,
    # la réservation rejetée quand c'est le syndic qui annule.
    def cancel(self, reservation_id: int, actor: Actor, reason: Optional[str] = None) -> Optional[Reservation]:
        r = self.get(reservation_id)
        if actor.is_manager:
            return self.reject(reservation_id, actor, reason)
        if r.requester_id != actor.id:
            raise AuthorizationError("only the requester or a manager can cancel this reservation",
                                     details={"reservation_id": reservation_id})
        if r.status not in (ReservationStatus.PENDING, ReservationStatus.CONFIRMED):
            raise TransitionError(f"cannot cancel a {r.status.value} reservation", field="status",
                                  details={"status": r.status.value})
        payload = event_payload(r)
        self.reservations.delete(r)
        logger.info("reservation %s cancelled by its requester %s", reservation_id, actor.id)
        safe_publish(self.publish, "ReservationCancelled", payload)
        return None

    # Historique : réservations rejetées ou terminées, les plus récentes d'abord
    def history(self, actor: Actor, now: datetime, area_id: Optional[int] = None) -> List[Reservation]:
        self._require_manager(actor, "read the history of")
        local = to_local(now)
        rows = [
            r for r in self.reservations.query(area_id=area_id)
            if r.status == ReservationStatus.REJECTED or ends_at(r.date, r.end_time) < local
        ]
        return sorted(rows, key=lambda r: starts_at(r.date, r.start_time), reverse=True)

    def _check_transition(self, r: Reservation, target: ReservationStatus):
        if target not in TRANSITIONS[r.status]:
            raise TransitionError(
                f"cannot move a {r.status.value} reservation to {target.value}", field="status",
                details={"status": r.status.value, "target": target.value},
            )

    @staticmethod
    def _clean_reason(reason: Optional[str]) -> str:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("a rejection reason is required", field="reason")
        if len(reason) > MAX_REASON_LENGTH:
            raise ValidationError(f"reason must be at most {MAX_REASON_LENGTH} characters", field="reason",
                                  details={"length": len(reason)})
        return reason

    @staticmethod
    def _require_manager(actor: Actor, action: str):
        if not actor.is_manager:
            raise AuthorizationError(f"only a manager can {action} reservations", details={"action": action})
