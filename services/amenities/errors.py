# ============================================================
# errors.py - Erreurs métier du service Amenities
# ------------------------------------------------------------
# Chaque erreur remonte à l'appelant avec assez de détails pour
# afficher un message précis (champ fautif, heure en conflit).
# L'API les convertit en réponses HTTP (voir api.py).
# ============================================================
from typing import Any, Dict, Optional


class ReservationError(Exception):
    kind = "reservation_error"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message, "field": self.field, "details": self.details}


# Champ manquant ou mal formé (date, startHour, motif de rejet...)
class ValidationError(ReservationError):
    kind = "validation_error"
    status_code = 400


# Transition interdite par la machine à états (ex: sortir de "rejected")
class TransitionError(ValidationError):
    kind = "transition_error"


# Durée trop longue, ou plage hors des heures d'ouverture
class CapacityError(ReservationError):
    kind = "capacity_error"
    status_code = 422


# Chevauchement avec une réservation non rejetée (y compris à l'écriture).
# Seule erreur que l'appelant peut réessayer après relecture des créneaux.
class ConflictError(ReservationError):
    kind = "conflict_error"
    status_code = 409


class NotFoundError(ReservationError):
    kind = "not_found"
    status_code = 404


class AuthorizationError(ReservationError):
    kind = "authorization_error"
    status_code = 403
