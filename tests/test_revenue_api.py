import logging
from decimal import Decimal

from sqlalchemy.exc import OperationalError

from hallbook.models import Booking, OwnerRevenue
from tests.conftest import BOOKINGS, REVENUE, SLOTS, auth_headers, book, make_hall, make_user


def complete(client, headers, booking_id):
    return client.post(f"{REVENUE}/complete-booking", json={"booking_id": booking_id}, headers=headers)


class TestCompleteBooking:
    def test_posts_revenue_snapshot(self, client, hall, customer, owner, owner_headers, customer_headers, future_date):
        booking = book(client, customer_headers, hall.id, future_date).json()

        response = complete(client, owner_headers, booking["id"])

        assert response.status_code == 201
        body = response.json()
        assert body["booking_status"] == "completed"
        revenue = body["revenue"]
        assert revenue["booking_id"] == booking["id"]
        assert revenue["hall_owner_id"] == owner.id
        assert revenue["hall_name"] == "Grand Ballroom"
        assert revenue["hall_city"] == "Pune"
        assert revenue["customer_name"] == customer.name
        assert revenue["customer_email"] == customer.email
        assert revenue["customer_phone"] == "9000000000"
        assert revenue["status"] == "completed"
        assert Decimal(revenue["total_amount"]) == Decimal("1500")
        assert Decimal(revenue["platform_fee"]) == Decimal("75")
        assert Decimal(revenue["owner_commission"]) == Decimal("1350")
        assert revenue["transaction_id"].startswith(f"TXN_{booking['id']}_")

        booking_after = client.get(f"{BOOKINGS}/{booking['id']}", headers=customer_headers).json()
        assert booking_after["status"] == "completed"
        slot = client.get(f"{SLOTS}/hall/{hall.id}").json()[0]
        assert slot["status"] == "completed"

    def test_completion_is_idempotent(self, client, hall, owner_headers, customer_headers, future_date):
        booking = book(client, customer_headers, hall.id, future_date).json()

        first = complete(client, owner_headers, booking["id"]).json()
        second = complete(client, owner_headers, booking["id"]).json()

        assert first["revenue"]["id"] == second["revenue"]["id"]
        assert client.get(f"{REVENUE}/", headers=owner_headers).json()["total"] == 1

    def test_walk_in_snapshot(self, client, hall, owner_headers, future_date):
        booking = client.post(
            f"{BOOKINGS}/walk-in",
            json={"hall_id": hall.id, "booking_date": future_date.isoformat(), "start_time": "09:00", "end_time": "10:00"},
            headers=owner_headers
        ).json()

        revenue = complete(client, owner_headers, booking["id"]).json()["revenue"]
        assert revenue["customer_id"] is None
        assert revenue["customer_name"] == "Walk-in customer"
        assert revenue["customer_phone"] == "N/A"

    def test_cancelled_booking_cannot_be_completed(self, client, hall, owner_headers, customer_headers, future_date):
        booking = book(client, customer_headers, hall.id, future_date).json()
        client.post(f"{BOOKINGS}/{booking['id']}/cancel", json={"cancellation_reason": "x"}, headers=customer_headers)

        response = complete(client, owner_headers, booking["id"])
        assert response.status_code == 400

    def test_only_the_hall_owner_completes(self, client, db_session, hall, customer_headers, future_date):
        booking = book(client, customer_headers, hall.id, future_date).json()
        stranger = make_user(db_session, "stranger@example.com", role="hall_owner")

        assert complete(client, auth_headers(stranger), booking["id"]).status_code == 403
        assert complete(client, customer_headers, booking["id"]).status_code == 403

    def test_unknown_booking(self, client, owner_headers):
        assert complete(client, owner_headers, 424242).status_code == 404

    def test_posting_failure_keeps_booking_completed(self, client, db_session, monkeypatch, caplog,
                                                     hall, owner_headers, customer_headers, future_date):
        booking = book(client, customer_headers, hall.id, future_date).json()

        real_commit = db_session.commit

        def failing_commit():
            if any(isinstance(obj, OwnerRevenue) for obj in db_session.new):
                raise OperationalError("INSERT INTO owner_revenues", {}, Exception("database is locked"))
            return real_commit()

        monkeypatch.setattr(db_session, "commit", failing_commit)

        with caplog.at_level(logging.ERROR, logger="hallbook.revenue.service"):
            response = complete(client, owner_headers, booking["id"])

        assert response.status_code == 201
        assert response.json()["revenue"] is None
        assert "Failed to post revenue" in caplog.text
        assert db_session.get(Booking, booking["id"]).status == "completed"
        assert db_session.query(OwnerRevenue).count() == 0

        monkeypatch.undo()
        retried = complete(client, owner_headers, booking["id"]).json()
        assert retried["revenue"]["booking_id"] == booking["id"]


class TestRevenueQueries:
    def _complete_bookings(self, client, db_session, hall, owner, owner_headers, customer_headers, future_date):
        second_hall = make_hall(db_session, owner, name="Rooftop Terrace", price_per_hour=Decimal("750"))
        ids = [
            book(client, customer_headers, hall.id, future_date, "10:00", "13:00").json()["id"],
            book(client, customer_headers, hall.id, future_date, "14:00", "15:00").json()["id"],
            book(client, customer_headers, second_hall.id, future_date, "10:00", "12:00").json()["id"],
        ]
        for booking_id in ids:
            complete(client, owner_headers, booking_id)
        return ids, second_hall

    def test_totals_and_breakdowns(self, client, db_session, hall, owner, owner_headers, customer_headers, future_date):
        ids, second_hall = self._complete_bookings(client, db_session, hall, owner, owner_headers, customer_headers, future_date)

        totals = client.get(f"{REVENUE}/total", headers=owner_headers).json()
        assert Decimal(totals["total_revenue"]) == Decimal("3500")
        assert totals["total_bookings"] == 3
        assert Decimal(totals["total_platform_fees"]) == Decimal("175")
        assert Decimal(totals["total_owner_commission"]) == Decimal("3150")

        by_hall = client.get(f"{REVENUE}/by-hall", headers=owner_headers).json()
        assert [(row["hall_name"], Decimal(row["total_revenue"]), row["total_bookings"]) for row in by_hall] == [
            ("Grand Ballroom", Decimal("2000"), 2),
            ("Rooftop Terrace", Decimal("1500"), 1),
        ]

        monthly = client.get(f"{REVENUE}/monthly-stats", params={"year": future_date.year}, headers=owner_headers).json()
        assert monthly == [{
            "year": future_date.year,
            "month": future_date.month,
            "total_revenue": monthly[0]["total_revenue"],
            "total_bookings": 3,
        }]
        assert Decimal(monthly[0]["total_revenue"]) == Decimal("3500")

        filtered = client.get(f"{REVENUE}/", params={"hall_id": second_hall.id}, headers=owner_headers).json()
        assert filtered["total"] == 1

    def test_refund_drops_record_from_totals(self, client, db_session, hall, owner, owner_headers, customer_headers, future_date):
        ids, _ = self._complete_bookings(client, db_session, hall, owner, owner_headers, customer_headers, future_date)
        revenue = client.get(f"{REVENUE}/booking/{ids[0]}", headers=owner_headers).json()

        refunded = client.put(f"{REVENUE}/{revenue['id']}/refund", json={"notes": "Refunded after complaint"}, headers=owner_headers)
        assert refunded.status_code == 200
        assert refunded.json()["status"] == "refunded"
        assert refunded.json()["notes"].endswith("Refunded after complaint")

        totals = client.get(f"{REVENUE}/total", headers=owner_headers).json()
        assert totals["total_bookings"] == 2
        assert Decimal(totals["total_revenue"]) == Decimal("2000")

        again = client.put(f"{REVENUE}/{revenue['id']}/refund", json={}, headers=owner_headers)
        assert again.status_code == 400

    def test_owners_only_see_their_own_records(self, client, db_session, hall, owner, owner_headers, customer_headers,
                                               admin_headers, future_date):
        ids, _ = self._complete_bookings(client, db_session, hall, owner, owner_headers, customer_headers, future_date)
        other_owner = make_user(db_session, "owner2@example.com", role="hall_owner")

        assert client.get(f"{REVENUE}/", headers=auth_headers(other_owner)).json()["total"] == 0
        assert client.get(f"{REVENUE}/booking/{ids[0]}", headers=auth_headers(other_owner)).status_code == 403

        everyone = client.get(f"{REVENUE}/total", headers=admin_headers).json()
        assert everyone["total_bookings"] == 3
        scoped = client.get(f"{REVENUE}/total", params={"hall_owner_id": other_owner.id}, headers=admin_headers).json()
        assert scoped["total_bookings"] == 0

    def test_only_admins_delete_records(self, client, db_session, hall, owner, owner_headers, customer_headers,
                                        admin_headers, future_date):
        ids, _ = self._complete_bookings(client, db_session, hall, owner, owner_headers, customer_headers, future_date)
        revenue = client.get(f"{REVENUE}/booking/{ids[0]}", headers=owner_headers).json()

        assert client.delete(f"{REVENUE}/{revenue['id']}", headers=owner_headers).status_code == 403
        assert client.delete(f"{REVENUE}/{revenue['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"{REVENUE}/booking/{ids[0]}", headers=owner_headers).status_code == 404

    def test_customers_have_no_revenue_access(self, client, customer_headers):
        assert client.get(f"{REVENUE}/total", headers=customer_headers).status_code == 403
