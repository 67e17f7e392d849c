from django.urls import path

from .views import (
    BookingBillingView,
    ChargeCreateView,
    ChargeDeleteView,
    ChargesMarkPaidView,
    CodCollectedView,
    PaymentSubmitView,
    PaymentVerifyView,
    PricingSuggestView,
    ReceivableListView,
    ReceivableSummaryView,
    SendPaymentView,
)

urlpatterns = [
    path('bookings/<int:booking_id>/billing', BookingBillingView.as_view(), name='booking-billing'),
    path('bookings/<int:booking_id>/charges', ChargeCreateView.as_view(), name='charge-create'),
    path('bookings/<int:booking_id>/charges/mark-paid', ChargesMarkPaidView.as_view(), name='charges-mark-paid'),
    path('bookings/<int:booking_id>/charges/<str:kind>', ChargeDeleteView.as_view(), name='charge-delete-freight'),
    path('bookings/<int:booking_id>/charges/<str:kind>/<str:subtype>', ChargeDeleteView.as_view(), name='charge-delete'),
    path('bookings/<int:booking_id>/send-payment', SendPaymentView.as_view(), name='send-payment'),
    path('bookings/<int:booking_id>/payments', PaymentSubmitView.as_view(), name='payment-submit'),
    path('bookings/<int:booking_id>/cod-collected', CodCollectedView.as_view(), name='cod-collected'),
    path('payment-attempts/<int:attempt_id>/verify', PaymentVerifyView.as_view(), name='payment-verify'),
    path('receivables', ReceivableListView.as_view(), name='receivable-list'),
    path('receivables/summary', ReceivableSummaryView.as_view(), name='receivable-summary'),
    path('pricing/suggest', PricingSuggestView.as_view(), name='pricing-suggest'),
]
