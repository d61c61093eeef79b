# ============================================================
# repository.py - Accès aux données Area / Reservation
# ------------------------------------------------------------
# Ce module implémente le design pattern "Repository" pour les
# tables Area, Reservation et SlotHold. Il isole la logique
# d'accès (create / update / delete / query) des composants
# métier, qui ne manipulent jamais la Session directement.
# ============================================================
from datetime import date
from typing import Iterable, List, Optional

from sqlmodel import Session, select

from models import Area, Reservation, ReservationStatus, SlotHold


# AreaRepository
# Méthodes CRUD simplifiées sur la table Area.
class AreaRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, a: Area) -> Area:
        self.session.add(a)
        self.session.commit()
        self.session.refresh(a)
        return a

    def get(self, area_id: int) -> Optional[Area]:
        return self.session.exec(select(Area).where(Area.id == area_id)).first()

    def list(self) -> List[Area]:
        return list(self.session.exec(select(Area).order_by(Area.name)).all())

    def by_ids(self, ids: Iterable[int]) -> dict:
        ids = set(ids)
        if not ids:
            return {}
        rows = self.session.exec(select(Area).where(Area.id.in_(ids))).all()
        return {a.id: a for a in rows}

    def update(self, a: Area, fields: dict) -> Area:
        for key, value in fields.items():
            setattr(a, key, value)
        self.session.add(a)
        self.session.commit()
        self.session.refresh(a)
        return a

    # Supprime l'espace, ses réservations et leurs créneaux en une transaction
    def delete_cascade(self, a: Area) -> int:
        holds = self.session.exec(select(SlotHold).where(SlotHold.area_id == a.id)).all()
        for h in holds:
            self.session.delete(h)
        self.session.flush()
        rows = self.session.exec(select(Reservation).where(Reservation.area_id == a.id)).all()
        for r in rows:
            self.session.delete(r)
        self.session.flush()
        self.session.delete(a)
        self.session.commit()
        return len(rows)


# ReservationRepository
# Lecture par espace/jour pour le calcul des créneaux, et écriture
# atomique réservation + créneaux occupés.
class ReservationRepository:
    def __init__(self, session: Session):
        self.session = session

    # Une seule transaction : la réservation et une ligne SlotHold par heure.
    # En cas de collision sur la contrainte unique, le commit lève
    # IntegrityError et rien n'est écrit.
    def create_with_holds(self, r: Reservation, hours: Iterable[int]) -> Reservation:
        try:
            self.session.add(r)
            self.session.flush()
            for hour in hours:
                self.session.add(SlotHold(reservation_id=r.id, area_id=r.area_id, date=r.date, hour=hour))
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(r)
        return r

    def get(self, reservation_id: int) -> Optional[Reservation]:
        return self.session.exec(select(Reservation).where(Reservation.id == reservation_id)).first()

    def by_ids(self, ids: Iterable[int]) -> List[Reservation]:
        ids = list(ids)
        if not ids:
            return []
        return list(self.session.exec(select(Reservation).where(Reservation.id.in_(ids))).all())

    def for_area_day(self, area_id: int, day: date) -> List[Reservation]:
        stmt = (
            select(Reservation)
            .where(Reservation.area_id == area_id, Reservation.date == day)
            .order_by(Reservation.id)
        )
        return list(self.session.exec(stmt).all())

    def for_area_between(self, area_id: int, first: date, last: date) -> List[Reservation]:
        stmt = select(Reservation).where(
            Reservation.area_id == area_id,
            Reservation.date >= first,
            Reservation.date <= last,
            Reservation.status != ReservationStatus.REJECTED,
        )
        return list(self.session.exec(stmt).all())

    def query(self, area_id: Optional[int] = None, requester_id: Optional[str] = None,
              statuses: Optional[Iterable[ReservationStatus]] = None) -> List[Reservation]:
        stmt = select(Reservation)
        if area_id is not None:
            stmt = stmt.where(Reservation.area_id == area_id)
        if requester_id is not None:
            stmt = stmt.where(Reservation.requester_id == requester_id)
        if statuses is not None:
            stmt = stmt.where(Reservation.status.in_(list(statuses)))
        return list(self.session.exec(stmt.order_by(Reservation.date, Reservation.start_time, Reservation.id)).all())

    def update(self, r: Reservation, fields: dict, release_holds: bool = False) -> Reservation:
        for key, value in fields.items():
            setattr(r, key, value)
        self.session.add(r)
        if release_holds:
            self._delete_holds(r)
        self.session.commit()
        self.session.refresh(r)
        return r

    def update_many(self, rows: List[Reservation], fields: dict) -> None:
        for r in rows:
            for key, value in fields.items():
                setattr(r, key, value)
            self.session.add(r)
        self.session.commit()

    def delete(self, r: Reservation) -> None:
        self._delete_holds(r)
        self.session.delete(r)
        self.session.commit()

    def holds_for(self, r: Reservation) -> List[SlotHold]:
        return list(self.session.exec(select(SlotHold).where(SlotHold.reservation_id == r.id)).all())

    def _delete_holds(self, r: Reservation) -> None:
        for h in self.holds_for(r):
            self.session.delete(h)
        self.session.flush()
