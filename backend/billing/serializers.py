from __future__ import annotations

from rest_framework import serializers

from .constants import AGING_BUCKETS, ChargeKind, PaymentMethod
from .services.receivables import STATUS_FILTERS


def _money(**kwargs):
    return serializers.DecimalField(max_digits=18, decimal_places=2, **kwargs)


# ---------- INPUT ----------
class ChargeInputSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=[k.value for k in ChargeKind])
    subtype = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    amount = _money(min_value=0)
    payee = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    check_date = serializers.DateField(required=False, allow_null=True)
    voucher = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    is_paid = serializers.BooleanField(required=False, default=False)

    def to_internal_value(self, data):
        # accept lower-case kinds from form posts
        if hasattr(data, "get") and isinstance(data.get("kind"), str):
            data = data.copy()
            data["kind"] = data["kind"].upper()
        return super().to_internal_value(data)


class ChargeKeySerializer(serializers.Serializer):
    kind = serializers.CharField()
    subtype = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class MarkPaidSerializer(serializers.Serializer):
    charges = ChargeKeySerializer(many=True, allow_empty=False)
    voucher = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    check_date = serializers.DateField(required=False, allow_null=True)


class PriceLineInputSerializer(serializers.Serializer):
    description = serializers.CharField()
    amount = _money()
    markup = serializers.DecimalField(max_digits=7, decimal_places=2)
    markup_amount = _money()
    total = _money()
    kind = serializers.CharField(required=False, allow_null=True)
    subtype = serializers.CharField(required=False, allow_null=True)


class SendPaymentSerializer(serializers.Serializer):
    total_payment = _money()
    lines = PriceLineInputSerializer(many=True, required=False)
    markup_ratio = serializers.DecimalField(max_digits=6, decimal_places=4, required=False, allow_null=True)


class PaymentSubmitSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=[m.value for m in PaymentMethod])
    amount = _money(required=False, allow_null=True)
    reference_number = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    receipt_image = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=500)

    def to_internal_value(self, data):
        if hasattr(data, "get") and isinstance(data.get("method"), str):
            data = data.copy()
            data["method"] = data["method"].upper()
        return super().to_internal_value(data)


class VerifySerializer(serializers.Serializer):
    approve = serializers.BooleanField()
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class ReceivableQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=STATUS_FILTERS, required=False)
    bucket = serializers.ChoiceField(choices=AGING_BUCKETS, required=False)


class SuggestQuerySerializer(serializers.Serializer):
    total_expenses = _money()
    markup = serializers.DecimalField(max_digits=6, decimal_places=4, required=False)


# ---------- OUTPUT (engine dataclasses) ----------
class ChargeSerializer(serializers.Serializer):
    id = serializers.IntegerField(allow_null=True)
    kind = serializers.SerializerMethodField()
    subtype = serializers.CharField(allow_null=True)
    amount = _money()
    payee = serializers.CharField(allow_null=True)
    check_date = serializers.DateField(allow_null=True)
    voucher = serializers.CharField(allow_null=True)
    is_paid = serializers.BooleanField()

    def get_kind(self, obj):
        return getattr(obj.kind, "value", obj.kind)


class PriceLineSerializer(serializers.Serializer):
    description = serializers.CharField()
    kind = serializers.CharField(allow_null=True)
    subtype = serializers.CharField(allow_null=True)
    amount = _money()
    markup = serializers.DecimalField(max_digits=7, decimal_places=2)
    markup_amount = _money()
    total = _money()


class ReceivableSerializer(serializers.Serializer):
    id = serializers.IntegerField(allow_null=True)
    booking_id = serializers.IntegerField()
    total_expenses = _money()
    total_payment = _money()
    amount_collected = _money()
    collectible_amount = _money()
    payment_method = serializers.CharField(allow_null=True)
    is_paid = serializers.BooleanField()
    cod_pending = serializers.BooleanField()
    due_date = serializers.DateField(allow_null=True)
    state = serializers.SerializerMethodField()
    price_lines = PriceLineSerializer(many=True)
    created_at = serializers.DateTimeField(allow_null=True)
    updated_at = serializers.DateTimeField(allow_null=True)

    def get_state(self, obj):
        return getattr(obj.state, "value", obj.state)


class PaymentAttemptSerializer(serializers.Serializer):
    id = serializers.IntegerField(allow_null=True)
    booking_id = serializers.IntegerField()
    method = serializers.CharField()
    amount = _money()
    reference_number = serializers.CharField(allow_null=True)
    receipt_image = serializers.CharField(allow_null=True)
    status = serializers.CharField()
    admin_notes = serializers.CharField(allow_null=True)
    created_at = serializers.DateTimeField(allow_null=True)
    verified_at = serializers.DateTimeField(allow_null=True)


class ViewStateSerializer(serializers.Serializer):
    is_fully_paid = serializers.BooleanField()
    is_cod_pending = serializers.BooleanField()
    is_gcash_pending_verification = serializers.BooleanField()
    status_label = serializers.CharField()


class BillingViewSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()
    charges = ChargeSerializer(many=True)
    total_expenses = _money()
    unpaid_total = _money()
    unpaid_count = serializers.IntegerField()
    receivable = ReceivableSerializer(allow_null=True)
    view = ViewStateSerializer(allow_null=True)
    attempts = PaymentAttemptSerializer(many=True)
    aging_bucket = serializers.CharField(allow_null=True)
    is_overdue = serializers.BooleanField()
    profit = _money(allow_null=True)
    profit_margin = serializers.DecimalField(max_digits=9, decimal_places=2, allow_null=True)
    breakdown = PriceLineSerializer(many=True)


class ReceivableSummarySerializer(serializers.Serializer):
    receivable_count = serializers.IntegerField()
    total_expenses = _money()
    total_billed = _money()
    total_collected = _money()
    total_collectible = _money()
    total_profit = _money()
    paid_count = serializers.IntegerField()
    overdue_count = serializers.IntegerField()
    undetermined_due_count = serializers.IntegerField()
    aging = serializers.DictField(child=serializers.IntegerField())
    collectible_by_bucket = serializers.DictField(child=_money())
