# billing/views.py
import logging

from rest_framework import status
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    BillingViewSerializer,
    ChargeInputSerializer,
    ChargeSerializer,
    MarkPaidSerializer,
    PaymentAttemptSerializer,
    PaymentSubmitSerializer,
    ReceivableQuerySerializer,
    ReceivableSerializer,
    ReceivableSummarySerializer,
    SendPaymentSerializer,
    SuggestQuerySerializer,
    VerifySerializer,
)
from .services import pricing_advisor
from .services.errors import (
    AlreadyPaidError,
    BillingError,
    DuplicateSubtypeError,
    InvalidTransitionError,
    NotFoundError,
    TransientIOError,
)
from .services.reconciliation import ReconciliationService

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    DuplicateSubtypeError: status.HTTP_409_CONFLICT,
    AlreadyPaidError: status.HTTP_409_CONFLICT,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    TransientIOError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(exc: BillingError) -> Response:
    code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if code >= 500:
        logger.warning("Billing request failed: %s", exc)
    return Response(exc.to_dict(), status=code)


class BillingAPIView(APIView):
    """Base view: builds the service and maps engine errors to responses."""
    permission_classes = [IsAdminUser]

    def service(self):
        return ReconciliationService()

    def check_booking_access(self, request, service, booking_id):
        """Customers may only touch their own bookings; staff see all."""
        if request.user.is_staff:
            return
        booking = service.store.get_booking(booking_id)
        if booking.customer_id != request.user.id:
            raise PermissionDenied("Not allowed")

    def handle_exception(self, exc):
        if isinstance(exc, BillingError):
            return error_response(exc)
        return super().handle_exception(exc)


# ---- Booking billing overview ----
class BookingBillingView(BillingAPIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, booking_id):
        service = self.service()
        self.check_booking_access(request, service, booking_id)
        billing = service.get_billing(booking_id)
        return Response(BillingViewSerializer(billing).data)


# ---- Accounts payable ----
class ChargeCreateView(BillingAPIView):
    def post(self, request, booking_id):
        ser = ChargeInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        charge = self.service().record_charge(booking_id, ser.validated_data)
        return Response(ChargeSerializer(charge).data, status=status.HTTP_201_CREATED)


class ChargeDeleteView(BillingAPIView):
    def delete(self, request, booking_id, kind, subtype=None):
        removed = self.service().remove_charge(booking_id, kind, subtype)
        if removed is None:
            return Response({"error": "Charge not found", "code": "not_found"},
                            status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ChargesMarkPaidView(BillingAPIView):
    def post(self, request, booking_id):
        ser = MarkPaidSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        pairs = [(c["kind"], c.get("subtype") or None) for c in data["charges"]]
        outcomes = self.service().mark_charges_paid(
            booking_id, pairs, voucher=data.get("voucher"), check_date=data.get("check_date"),
        )
        failed = [o for o in outcomes if not o.ok]
        # 207 when some but not all charges were settled
        code = status.HTTP_200_OK if not failed else (
            status.HTTP_207_MULTI_STATUS if len(failed) < len(outcomes) else status.HTTP_400_BAD_REQUEST
        )
        return Response({"results": [o.to_dict() for o in outcomes]}, status=code)


# ---- Accounts receivable ----
class SendPaymentView(BillingAPIView):
    def post(self, request, booking_id):
        ser = SendPaymentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        receivable = self.service().send_payment(
            booking_id, data["total_payment"],
            lines=data.get("lines"), markup_ratio=data.get("markup_ratio"),
        )
        return Response(ReceivableSerializer(receivable).data)


class PaymentSubmitView(BillingAPIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, booking_id):
        ser = PaymentSubmitSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        service = self.service()
        self.check_booking_access(request, service, booking_id)
        attempt = service.submit_customer_payment(
            booking_id,
            data["method"],
            amount=data.get("amount"),
            reference=data.get("reference_number"),
            receipt_image=data.get("receipt_image"),
            submitted_by=request.user,
        )
        return Response(PaymentAttemptSerializer(attempt).data, status=status.HTTP_201_CREATED)


class PaymentVerifyView(BillingAPIView):
    def post(self, request, attempt_id):
        ser = VerifySerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        receivable = self.service().verify_payment(
            attempt_id, ser.validated_data["approve"], notes=ser.validated_data.get("notes"),
        )
        return Response(ReceivableSerializer(receivable).data)


class CodCollectedView(BillingAPIView):
    def post(self, request, booking_id):
        receivable = self.service().mark_cod_collected(booking_id)
        return Response(ReceivableSerializer(receivable).data)


class ReceivableListView(BillingAPIView):
    def get(self, request):
        query = ReceivableQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        rows = self.service().list_receivables(
            status=query.validated_data.get("status"), bucket=query.validated_data.get("bucket"),
        )
        return Response(ReceivableSerializer(rows, many=True).data)


class ReceivableSummaryView(BillingAPIView):
    def get(self, request):
        summary = self.service().aging_summary()
        return Response(ReceivableSummarySerializer(summary).data)


# ---- Pricing ----
class PricingSuggestView(BillingAPIView):
    def get(self, request):
        query = SuggestQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        markup = query.validated_data.get("markup")
        suggested = pricing_advisor.suggest(query.validated_data["total_expenses"], markup)
        return Response({
            "total_expenses": str(query.validated_data["total_expenses"]),
            "markup": str(markup if markup is not None else pricing_advisor.default_markup()),
            "suggested_total": str(suggested),
            "presets": [str(p) for p in pricing_advisor.markup_presets()],
        })
