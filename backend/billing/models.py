from django.conf import settings
from django.db import models

from .constants import AttemptStatus, ChargeKind, PaymentMethod, PaymentState, choices


class Charge(models.Model):
    """Vendor-side (AP) line item. Duplicated subtypes are tolerated here and dropped on load."""

    booking = models.ForeignKey('bookings.Booking', on_delete=models.CASCADE, related_name='charges')
    kind = models.CharField(max_length=10, choices=choices(ChargeKind))
    subtype = models.CharField(max_length=32, blank=True, null=True)
    amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    payee = models.CharField(max_length=255, blank=True, null=True)
    check_date = models.DateField(blank=True, null=True)
    voucher = models.CharField(max_length=100, blank=True, null=True)
    is_paid = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['id']
        indexes = [
            models.Index(fields=['booking', 'kind', 'subtype'], name='billing_charge_kind_idx'),
        ]

    def __str__(self):
        return f"{self.booking_id} {self.kind} {self.subtype or ''}".strip()


class Receivable(models.Model):
    booking = models.OneToOneField('bookings.Booking', on_delete=models.CASCADE, related_name='receivable')
    total_expenses = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    total_payment = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    amount_collected = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    collectible_amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    payment_method = models.CharField(max_length=10, choices=choices(PaymentMethod), blank=True, null=True)
    is_paid = models.BooleanField(default=False)
    cod_pending = models.BooleanField(default=False)
    due_date = models.DateField(blank=True, null=True)
    state = models.CharField(max_length=32, choices=choices(PaymentState), default=PaymentState.NO_CHARGES.value)
    price_lines = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['state'], name='billing_ar_state_idx'),
            models.Index(fields=['is_paid', 'due_date'], name='billing_ar_paid_due_idx'),
        ]

    def __str__(self):
        return f"AR {self.booking_id} ({self.state})"


class PaymentAttempt(models.Model):
    booking = models.ForeignKey('bookings.Booking', on_delete=models.CASCADE, related_name='payment_attempts')
    method = models.CharField(max_length=10, choices=choices(PaymentMethod))
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    reference_number = models.CharField(max_length=100, blank=True, null=True)
    receipt_image = models.CharField(max_length=500, blank=True, null=True)
    status = models.CharField(max_length=10, choices=choices(AttemptStatus), default=AttemptStatus.PENDING.value)
    admin_notes = models.TextField(blank=True, null=True)
    submitted_by = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    verified_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['booking', '-created_at'], name='billing_attempt_booking_idx'),
        ]

    def __str__(self):
        return f"{self.method} {self.amount} ({self.status})"
