# ============================================================
# models.py - Modèles de données SQLModel (Amenities Service)
# ------------------------------------------------------------
# Définit les tables de la base :
#   1. Area : espace commun réservable et ses règles
#   2. Reservation : réservation d'une plage d'heures pleines
#   3. SlotHold : une ligne par heure occupée (garde d'unicité)
# ainsi que les schémas d'entrée/sortie utilisés par l'API.
# ============================================================
import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


# Statuts qui occupent un créneau
HOLDING_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)


class SlotStatus(str, Enum):
    FREE = "free"
    PENDING_HOLD = "pending_hold"
    CONFIRMED_HOLD = "confirmed_hold"
    PAST = "past"


class Role(str, Enum):
    MANAGER = "manager"
    RESIDENT = "resident"


# Acteur courant, résolu en amont (authentification hors périmètre)
@dataclass(frozen=True)
class Actor:
    id: str
    role: Role = Role.RESIDENT

    @property
    def is_manager(self) -> bool:
        return self.role == Role.MANAGER


# ------------------------------------------------------------
# Area
# ------------------------------------------------------------
# Salle des fêtes, barbecue, rooftop... Horaires en "HH:MM"
# (heures pleines), durée max en heures, validation optionnelle
# par le syndic.
# ------------------------------------------------------------
class Area(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    open_time: str = "08:00"
    close_time: str = "22:00"
    requires_approval: bool = False
    max_duration_hours: int = 4


# ------------------------------------------------------------
# Reservation
# ------------------------------------------------------------
# Cycle de vie : pending → confirmed | rejected, confirmed → rejected
# (annulation motivée par le syndic). "rejected" est terminal.
# Les deux drapeaux viewed_by_* servent d'accusé de lecture par acteur.
# ------------------------------------------------------------
class Reservation(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    area_id: int = Field(index=True, foreign_key="area.id")
    date: dt.date = Field(index=True)
    start_time: str
    end_time: str
    requester_id: str = Field(index=True)
    requester_name: Optional[str] = None
    apartment_label: str = ""
    status: ReservationStatus = ReservationStatus.PENDING
    viewed_by_manager: bool = False
    viewed_by_requester: bool = False
    rejection_reason: Optional[str] = None
    created_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))

    @property
    def start_hour(self) -> int:
        return int(self.start_time.split(":")[0])

    @property
    def end_hour(self) -> int:
        return int(self.end_time.split(":")[0])

    def covers(self, hour: int) -> bool:
        return self.start_hour <= hour < self.end_hour


SLOT_HOLD_CONSTRAINT = "uq_slot_hold_area_date_hour"


# Une ligne par heure occupée par une réservation non rejetée.
# L'unicité (area_id, date, hour) fait échouer l'écriture perdante
# quand deux demandes concurrentes visent le même créneau.
class SlotHold(SQLModel, table=True):
    __tablename__ = "slot_hold"
    __table_args__ = (UniqueConstraint("area_id", "date", "hour", name=SLOT_HOLD_CONSTRAINT),)

    id: Optional[int] = Field(default=None, primary_key=True)
    reservation_id: int = Field(index=True, foreign_key="reservation.id")
    area_id: int
    date: dt.date
    hour: int


# ------------------------------------------------------------
# Schémas d'entrée / sortie (non persistés)
# ------------------------------------------------------------
class AreaCreate(SQLModel):
    name: str
    open_time: str = "08:00"
    close_time: str = "22:00"
    requires_approval: bool = False
    max_duration_hours: int = 4


class AreaUpdate(SQLModel):
    name: Optional[str] = None
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    requires_approval: Optional[bool] = None
    max_duration_hours: Optional[int] = None


class BookingRequest(SQLModel):
    area_id: int
    date: Optional[dt.date] = None
    start_hour: Optional[int] = None
    duration_hours: int = 1
    # par défaut l'acteur réserve pour lui-même
    requester_id: Optional[str] = None
    requester_name: Optional[str] = None
    apartment_label: Optional[str] = None


class ReasonRequest(SQLModel):
    reason: Optional[str] = None


class SeenRequest(SQLModel):
    ids: Optional[List[int]] = None


class Slot(SQLModel):
    hour: int
    time: str
    status: SlotStatus
    reservation_id: Optional[int] = None


class DayOverview(SQLModel):
    date: dt.date
    has_booking: bool
    is_past: bool


class FeedItem(SQLModel):
    reservation_id: int
    kind: str = "reservation"
    title: str
    description: str
    status: ReservationStatus
    urgent: bool = False
    expired: bool = False
