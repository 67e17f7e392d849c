from datetime import date

import pytest
from django.contrib.auth import get_user_model
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from bookings.models import Booking

pytestmark = pytest.mark.django_db


def _mk_user_and_client(username="staff", is_staff=True):
    User = get_user_model()
    user = User.objects.create_user(username=username, email=f"{username}@example.com",
                                    password="pass", is_staff=is_staff)
    client = APIClient()
    client.force_authenticate(user=user)
    return user, client


@pytest.fixture
def staff():
    return _mk_user_and_client()[1]


@pytest.fixture
def customer_user_and_client():
    return _mk_user_and_client("customer", is_staff=False)


@pytest.fixture
def customer(customer_user_and_client):
    return customer_user_and_client[1]


@pytest.fixture
def booking(customer_user_and_client):
    return Booking.objects.create(reference="BK-API-1", customer=customer_user_and_client[0],
                                  terms=30, preferred_delivery_date=date(2025, 6, 1))


def _post_charges(client, booking_id):
    for body in (
        {"kind": "FREIGHT", "amount": "5000.00", "payee": "Ocean Lines"},
        {"kind": "trucking", "subtype": "ORIGIN", "amount": "1000.00"},
        {"kind": "TRUCKING", "subtype": "DESTINATION", "amount": "800.00"},
    ):
        r = client.post(f"/api/bookings/{booking_id}/charges", body, format="json")
        assert r.status_code == 201, r.content


def test_charges_and_billing_overview(staff, booking):
    _post_charges(staff, booking.id)
    r = staff.get(f"/api/bookings/{booking.id}/billing")
    assert r.status_code == 200, r.content
    data = r.json()
    assert data["total_expenses"] == "6800.00"
    assert data["unpaid_count"] == 3
    assert data["receivable"]["state"] == "READY_FOR_PAYMENT"
    assert data["view"]["status_label"] == "Ready for Invoice"
    assert [c["kind"] for c in data["charges"]] == ["FREIGHT", "TRUCKING", "TRUCKING"]


def test_duplicate_subtype_is_conflict(staff, booking):
    _post_charges(staff, booking.id)
    r = staff.post(f"/api/bookings/{booking.id}/charges",
                   {"kind": "TRUCKING", "subtype": "ORIGIN", "amount": "1"}, format="json")
    assert r.status_code == 409
    assert r.json()["code"] == "duplicate_subtype"


def test_negative_amount_is_bad_request(staff, booking):
    r = staff.post(f"/api/bookings/{booking.id}/charges",
                   {"kind": "MISC", "subtype": "DENR", "amount": "-1"}, format="json")
    assert r.status_code == 400


def test_unknown_booking_is_not_found(staff):
    r = staff.get("/api/bookings/9999/billing")
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"


def test_delete_charge(staff, booking):
    _post_charges(staff, booking.id)
    r = staff.delete(f"/api/bookings/{booking.id}/charges/TRUCKING/DESTINATION")
    assert r.status_code == 204
    r = staff.delete(f"/api/bookings/{booking.id}/charges/TRUCKING/DESTINATION")
    assert r.status_code == 404
    assert staff.get(f"/api/bookings/{booking.id}/billing").json()["total_expenses"] == "6000.00"


def test_bulk_mark_paid_reports_each_charge(staff, booking):
    _post_charges(staff, booking.id)
    body = {
        "charges": [{"kind": "TRUCKING", "subtype": "ORIGIN"}, {"kind": "PORT", "subtype": "CRAINAGE"}],
        "voucher": "CV-1",
        "check_date": "2025-06-15",
    }
    r = staff.post(f"/api/bookings/{booking.id}/charges/mark-paid", body, format="json")
    assert r.status_code == 207
    results = r.json()["results"]
    assert [x["ok"] for x in results] == [True, False]
    assert results[1]["code"] == "not_found"


def test_gcash_flow_over_http(staff, customer, booking):
    _post_charges(staff, booking.id)

    r = staff.post(f"/api/bookings/{booking.id}/send-payment",
                   {"total_payment": "8840.00", "markup_ratio": "0.30"}, format="json")
    assert r.status_code == 200, r.content
    assert r.json()["collectible_amount"] == "8840.00"
    assert len(r.json()["price_lines"]) == 3

    r = customer.post(f"/api/bookings/{booking.id}/payments", {"method": "gcash"}, format="json")
    assert r.status_code == 400
    assert r.json()["code"] == "missing_receipt"

    r = customer.post(f"/api/bookings/{booking.id}/payments",
                      {"method": "GCASH", "reference_number": "GC-9", "receipt_image": "receipts/9.png"},
                      format="json")
    assert r.status_code == 201, r.content
    attempt_id = r.json()["id"]
    assert r.json()["amount"] == "8840.00"

    r = customer.post(f"/api/payment-attempts/{attempt_id}/verify", {"approve": True}, format="json")
    assert r.status_code == 403

    r = staff.post(f"/api/payment-attempts/{attempt_id}/verify", {"approve": True, "notes": "ok"}, format="json")
    assert r.status_code == 200, r.content
    assert r.json()["is_paid"] is True
    assert r.json()["collectible_amount"] == "0.00"

    r = staff.post(f"/api/bookings/{booking.id}/send-payment", {"total_payment": "9000"}, format="json")
    assert r.status_code == 409
    assert r.json()["code"] == "already_paid"


def test_cod_flow_over_http(staff, customer, booking):
    staff.post(f"/api/bookings/{booking.id}/charges", {"kind": "FREIGHT", "amount": "4000"}, format="json")
    staff.post(f"/api/bookings/{booking.id}/send-payment", {"total_payment": "5000"}, format="json")

    r = customer.post(f"/api/bookings/{booking.id}/payments", {"method": "COD"}, format="json")
    assert r.status_code == 201, r.content
    billing = staff.get(f"/api/bookings/{booking.id}/billing").json()
    assert billing["view"]["is_cod_pending"] is True

    r = staff.post(f"/api/bookings/{booking.id}/cod-collected")
    assert r.status_code == 200
    assert r.json()["state"] == "PAID"

    r = staff.post(f"/api/bookings/{booking.id}/cod-collected")
    assert r.status_code == 409


def test_payment_before_invoice_is_conflict(customer, booking):
    r = customer.post(f"/api/bookings/{booking.id}/payments", {"method": "COD"}, format="json")
    assert r.status_code == 409
    assert r.json()["code"] == "invalid_transition"


def test_staff_only_endpoints(customer, booking):
    r = customer.post(f"/api/bookings/{booking.id}/charges", {"kind": "FREIGHT", "amount": "1"}, format="json")
    assert r.status_code == 403


def test_token_authentication(booking):
    User = get_user_model()
    user = User.objects.create_user(username="tok", password="x", is_staff=True)
    token, _ = Token.objects.get_or_create(user=user)
    client = APIClient()
    r = client.get(f"/api/bookings/{booking.id}/billing", HTTP_AUTHORIZATION=f"Token {token.key}")
    assert r.status_code == 200
    assert APIClient().get(f"/api/bookings/{booking.id}/billing").status_code in (401, 403)


def test_summary_and_listing(staff, booking):
    _post_charges(staff, booking.id)
    r = staff.get("/api/receivables/summary")
    assert r.status_code == 200
    data = r.json()
    assert data["receivable_count"] == 1
    assert set(data["aging"]) == {"current", "1-30", "31-60", "61-90", "over_90"}

    r = staff.get("/api/receivables", {"status": "ready"})
    assert r.status_code == 200
    assert [row["booking_id"] for row in r.json()] == [booking.id]

    r = staff.get("/api/receivables", {"status": "bogus"})
    assert r.status_code == 400


def test_pricing_suggest(staff, settings):
    settings.BILLING = {"DEFAULT_MARKUP": "0.30"}
    r = staff.get("/api/pricing/suggest", {"total_expenses": "6800"})
    assert r.status_code == 200
    assert r.json()["suggested_total"] == "8840.00"

    r = staff.get("/api/pricing/suggest", {"total_expenses": "6800", "markup": "0.5"})
    assert r.json()["suggested_total"] == "10200.00"


def test_customer_cannot_reach_other_bookings(staff, booking):
    _post_charges(staff, booking.id)
    _, stranger = _mk_user_and_client("stranger", is_staff=False)
    assert stranger.get(f"/api/bookings/{booking.id}/billing").status_code == 403
    r = stranger.post(f"/api/bookings/{booking.id}/payments", {"method": "COD"}, format="json")
    assert r.status_code == 403


def test_customer_reads_own_booking(customer, booking):
    r = customer.get(f"/api/bookings/{booking.id}/billing")
    assert r.status_code == 200
    assert customer.get("/api/bookings/9999/billing").status_code == 404
