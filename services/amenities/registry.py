# ============================================================
# registry.py - Registre des espaces communs (AreaRegistry)
# ------------------------------------------------------------
# Stocke les espaces réservables et leurs règles :
#   - horaires d'ouverture/fermeture (heures pleines)
#   - durée maximale d'une réservation
#   - validation obligatoire par le syndic ou non
# Seul le syndic (manager) crée, modifie ou supprime un espace.
# ============================================================
import logging
from typing import List, Optional

from errors import AuthorizationError, NotFoundError, ValidationError
from models import Actor, Area, AreaCreate, AreaUpdate
from publisher import publish_event, safe_publish
from repository import AreaRepository
from timeslots import parse_hour

logger = logging.getLogger(__name__)


def validate_area_rules(name: str, open_time: str, close_time: str, max_duration_hours) -> None:
    if not name or not name.strip():
        raise ValidationError("name is required", field="name")
    open_hour = parse_hour(open_time, "open_time")
    close_hour = parse_hour(close_time, "close_time")
    if open_hour >= close_hour:
        raise ValidationError(
            "open_time must be before close_time", field="open_time",
            details={"open_time": open_time, "close_time": close_time},
        )
    window = close_hour - open_hour
    if not isinstance(max_duration_hours, int) or isinstance(max_duration_hours, bool) \
            or not 1 <= max_duration_hours <= window:
        raise ValidationError(
            f"max_duration_hours must be between 1 and {window}", field="max_duration_hours",
            details={"value": max_duration_hours, "max": window},
        )


class AreaRegistry:
    def __init__(self, areas: AreaRepository, publish=publish_event):
        self.areas = areas
        self.publish = publish

    def get_area(self, area_id: int) -> Area:
        a = self.areas.get(area_id)
        if not a:
            raise NotFoundError("area not found", field="area_id", details={"area_id": area_id})
        return a

    def list_areas(self) -> List[Area]:
        return self.areas.list()

    def create_area(self, data: AreaCreate, actor: Actor) -> Area:
        self._require_manager(actor, "create")
        validate_area_rules(data.name, data.open_time, data.close_time, data.max_duration_hours)
        created = self.areas.create(Area(
            name=data.name.strip(),
            open_time=data.open_time,
            close_time=data.close_time,
            requires_approval=bool(data.requires_approval),
            max_duration_hours=data.max_duration_hours,
        ))
        logger.info("area %s created (%s-%s, max %sh)", created.id, created.open_time,
                    created.close_time, created.max_duration_hours)
        return created

    # On fusionne le partiel dans l'espace existant et on revalide le tout.
    # Les réservations déjà faites ne sont pas recontrôlées.
    def update_area(self, area_id: int, partial: AreaUpdate, actor: Actor) -> Area:
        self._require_manager(actor, "update")
        a = self.get_area(area_id)
        fields = partial.model_dump(exclude_unset=True, exclude_none=True)
        merged = {
            "name": a.name, "open_time": a.open_time, "close_time": a.close_time,
            "max_duration_hours": a.max_duration_hours,
        }
        merged.update({k: v for k, v in fields.items() if k in merged})
        validate_area_rules(merged["name"], merged["open_time"], merged["close_time"], merged["max_duration_hours"])
        if "name" in fields:
            fields["name"] = fields["name"].strip()
        updated = self.areas.update(a, fields)
        logger.info("area %s updated: %s", area_id, sorted(fields))
        return updated

    # Suppression destructive : l'appelant doit confirmer explicitement.
    # Toutes les réservations de l'espace sont supprimées avec lui.
    def delete_area(self, area_id: int, actor: Actor, confirm: bool = False) -> int:
        self._require_manager(actor, "delete")
        a = self.get_area(area_id)
        if not confirm:
            raise ValidationError(
                "deleting an area removes all its reservations; pass confirm=true",
                field="confirm", details={"area_id": area_id},
            )
        removed = self.areas.delete_cascade(a)
        logger.warning("area %s deleted with %d reservation(s)", area_id, removed)
        safe_publish(self.publish, "AreaDeleted", {"areaId": area_id, "removedReservations": removed})
        return removed

    def _require_manager(self, actor: Optional[Actor], action: str):
        if actor is None or not actor.is_manager:
            raise AuthorizationError(f"only a manager can {action} areas", details={"action": action})
