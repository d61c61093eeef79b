from datetime import datetime

import pytest

from errors import AuthorizationError, NotFoundError
from models import ReservationStatus
from timeslots import LOCAL_TZ

DAY = "2025-06-01"


class TestManagerFeed:
    def test_pending_requests_are_urgent(self, service, salao, resident, manager, now):
        r = service.book_slot(salao.id, DAY, 14, 2, resident.id, resident, now, apartment_label="101")

        [item] = service.manager_feed(manager, now)

        assert item.reservation_id == r.id
        assert item.urgent is True
        assert item.status == ReservationStatus.PENDING
        assert item.description == "Salão - 2025-06-01 (Apt 101)"
        assert item.expired is False

    def test_unseen_confirmed_bookings_are_listed_once(self, service, grill, resident, manager, now):
        r = service.book_slot(grill.id, DAY, 10, 1, resident.id, resident, now, apartment_label="101")

        items = service.manager_feed(manager, now)

        assert [i.reservation_id for i in items] == [r.id]
        assert items[0].urgent is False

    def test_manager_own_bookings_are_already_seen(self, service, grill, manager, resident, now):
        service.book_slot(grill.id, DAY, 10, 1, resident.id, manager, now)
        assert service.manager_feed(manager, now) == []

    def test_pending_stays_listed_after_mark_seen(self, service, salao, resident, manager, now):
        r = service.book_slot(salao.id, DAY, 14, 1, resident.id, resident, now)
        service.mark_seen(manager, [r.id])
        assert [i.reservation_id for i in service.manager_feed(manager, now)] == [r.id]

    def test_expired_flag(self, service, salao, resident, manager, now):
        service.book_slot(salao.id, DAY, 14, 1, resident.id, resident, now)
        later = datetime(2025, 6, 2, 8, 0, tzinfo=LOCAL_TZ)
        assert service.manager_feed(manager, later)[0].expired is True

    def test_requires_manager(self, service, resident, now):
        with pytest.raises(AuthorizationError):
            service.manager_feed(resident, now)


class TestRequesterFeed:
    def test_pending_is_not_a_decision(self, service, salao, resident, now):
        r = service.book_slot(salao.id, DAY, 14, 1, resident.id, resident, now)
        service.mark_seen(resident, [r.id])
        assert service.requester_feed(resident.id) == []

    def test_approval_is_surfaced(self, service, salao, resident, manager, now):
        r = service.book_slot(salao.id, DAY, 14, 2, resident.id, resident, now)
        service.approve(r.id, manager)

        [item] = service.requester_feed(resident.id)

        assert item.title == "Reservation approved"
        assert item.description == "Your reservation of Salão for 2025-06-01 was updated."
        assert item.urgent is False

    def test_rejection_shows_the_reason(self, service, grill, resident, manager, now):
        r = service.book_slot(grill.id, DAY, 14, 2, resident.id, resident, now)
        service.reject(r.id, manager, "manutenção")

        [item] = service.requester_feed(resident.id)

        assert item.title == "Reservation rejected"
        assert item.description == "Cancelled: manutenção"
        assert item.status == ReservationStatus.REJECTED

    def test_only_the_requester_sees_it(self, service, salao, resident, neighbour, manager, now):
        r = service.book_slot(salao.id, DAY, 14, 2, resident.id, resident, now)
        service.approve(r.id, manager)
        assert service.requester_feed(neighbour.id) == []

    def test_booking_made_by_manager_on_behalf(self, service, grill, resident, manager, now):
        service.book_slot(grill.id, DAY, 14, 1, resident.id, manager, now)
        [item] = service.requester_feed(resident.id)
        assert item.status == ReservationStatus.CONFIRMED


class TestMarkSeen:
    def test_scenario_approve_then_acknowledge(self, service, salao, resident, manager, now):
        r = service.book_slot(salao.id, DAY, 14, 2, resident.id, resident, now)
        r = service.approve(r.id, manager)
        assert r.viewed_by_requester is False

        assert service.mark_seen(resident, [r.id]) == 1

        assert service.get_reservation(r.id).viewed_by_requester is True
        assert service.requester_feed(resident.id) == []

    def test_is_idempotent(self, service, grill, resident, manager, now):
        r = service.book_slot(grill.id, DAY, 14, 1, resident.id, resident, now)
        assert service.mark_seen(manager, [r.id]) == 1
        assert service.mark_seen(manager, [r.id, r.id]) == 0
        assert service.get_reservation(r.id).viewed_by_manager is True

    def test_without_ids_marks_the_whole_feed(self, service, grill, resident, neighbour, manager, now):
        mine = service.book_slot(grill.id, DAY, 10, 1, resident.id, manager, now)
        theirs = service.book_slot(grill.id, DAY, 12, 1, neighbour.id, manager, now)

        assert service.mark_seen(resident) == 1

        assert service.get_reservation(mine.id).viewed_by_requester is True
        assert service.get_reservation(theirs.id).viewed_by_requester is False

    def test_manager_flag_is_independent_of_requester_flag(self, service, grill, resident, manager, now):
        r = service.book_slot(grill.id, DAY, 10, 1, resident.id, resident, now)
        service.mark_seen(manager)
        r = service.get_reservation(r.id)
        assert (r.viewed_by_manager, r.viewed_by_requester) == (True, True)

    def test_resident_cannot_acknowledge_others(self, service, grill, resident, neighbour, now):
        r = service.book_slot(grill.id, DAY, 10, 1, neighbour.id, neighbour, now)
        with pytest.raises(AuthorizationError) as exc:
            service.mark_seen(resident, [r.id])
        assert exc.value.details["ids"] == [r.id]

    def test_unknown_ids(self, service, manager):
        with pytest.raises(NotFoundError) as exc:
            service.mark_seen(manager, [7, 8])
        assert exc.value.details["ids"] == [7, 8]


def test_upcoming_confirmed_count(service, salao, grill, resident, neighbour, manager, now):
    earlier = datetime(2025, 5, 28, 9, 0, tzinfo=LOCAL_TZ)
    service.book_slot(grill.id, "2025-05-29", 10, 1, resident.id, manager, earlier)
    service.book_slot(grill.id, DAY, 10, 1, resident.id, resident, now)
    service.book_slot(salao.id, DAY, 10, 1, neighbour.id, neighbour, now)  # pending
    service.book_slot(grill.id, "2025-05-30", 8, 1, neighbour.id, manager, earlier)

    assert service.upcoming_confirmed_count(now) == 2
