# payments/api/serializers.py

from decimal import Decimal

from rest_framework import serializers

from payments.models import OutstandingEntry, Payment, PaymentAllocation
from payments.services.cash_discount import CD_MODES
from payments.services.receipt_selector import EXTRA_BASE_OUTSTANDING, EXTRA_BASES
from payments.services.payment_options import RATE_STEPS

MONEY = {"max_digits": 14, "decimal_places": 2}
NON_NEGATIVE = {**MONEY, "min_value": Decimal("0.00")}


# ============================================================
# ENTRIES
# ============================================================


class OutstandingEntrySerializer(serializers.ModelSerializer):
    party_name = serializers.CharField(source="party.name", read_only=True)
    adjusted_original = serializers.DecimalField(**MONEY, read_only=True)

    class Meta:
        model = OutstandingEntry
        fields = (
            "id",
            "party",
            "party_name",
            "sr_no",
            "description",
            "entry_date",
            "due_date",
            "rate",
            "net_weight",
            "final_weight",
            "original_net_amount",
            "adjusted_original",
            "net_amount",
            "total_paid",
            "total_cd",
            "extra_amount",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class EntryCreateSerializer(serializers.Serializer):
    party = serializers.UUIDField()
    sr_no = serializers.CharField(max_length=32)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    entry_date = serializers.DateField()
    due_date = serializers.DateField(required=False, allow_null=True, default=None)
    original_net_amount = serializers.DecimalField(**NON_NEGATIVE)
    rate = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=Decimal("0.00"))
    net_weight = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=Decimal("0.00"))
    final_weight = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=Decimal("0.00"))

    def validate(self, attrs):
        due = attrs.get("due_date")
        if due and due < attrs["entry_date"]:
            raise serializers.ValidationError({"due_date": "Due date cannot be before the entry date."})
        return attrs


class EntryUpdateSerializer(serializers.Serializer):
    description = serializers.CharField(required=False, allow_blank=True)
    entry_date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    original_net_amount = serializers.DecimalField(**NON_NEGATIVE, required=False)
    rate = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    net_weight = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    final_weight = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Nothing to update.")
        return attrs


# ============================================================
# PAYMENTS
# ============================================================


class PaymentAllocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentAllocation
        fields = (
            "entry",
            "sr_no",
            "position",
            "amount",
            "cd_amount",
            "cd_applied",
            "adjusted_original",
            "extra_amount",
        )
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    allocations = PaymentAllocationSerializer(many=True, read_only=True)
    party_name = serializers.CharField(source="party.name", read_only=True)

    class Meta:
        model = Payment
        fields = (
            "id",
            "payment_code",
            "party",
            "party_name",
            "payment_date",
            "amount",
            "cd_amount",
            "cd_applied",
            "cd_mode",
            "cd_percent",
            "payment_type",
            "channel",
            "extra_amount",
            "notes",
            "ledger_posting",
            "allocations",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class _PaymentInputMixin(serializers.Serializer):
    cd_enabled = serializers.BooleanField(required=False)
    cd_mode = serializers.ChoiceField(choices=CD_MODES, required=False, allow_null=True)
    cd_percent = serializers.DecimalField(
        max_digits=6, decimal_places=2, min_value=Decimal("0.00"), required=False, allow_null=True
    )
    cd_amount = serializers.DecimalField(**NON_NEGATIVE, required=False, allow_null=True)
    extra_amounts = serializers.DictField(
        child=serializers.DecimalField(**NON_NEGATIVE), required=False, allow_empty=True
    )
    payment_code = serializers.CharField(max_length=32, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=255, required=False, allow_blank=True)


class PaymentCreateSerializer(_PaymentInputMixin):
    party = serializers.UUIDField()
    entries = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    payment_date = serializers.DateField()
    amount = serializers.DecimalField(**NON_NEGATIVE)
    payment_type = serializers.ChoiceField(choices=Payment.TYPE_CHOICES, default=Payment.TYPE_FULL)
    channel = serializers.ChoiceField(choices=Payment.CHANNEL_CHOICES, default=Payment.CHANNEL_CASH)
    ledger_account = serializers.UUIDField(required=False, allow_null=True)


class PaymentUpdateSerializer(_PaymentInputMixin):
    entries = serializers.ListField(child=serializers.UUIDField(), required=False, allow_empty=False)
    payment_date = serializers.DateField(required=False)
    amount = serializers.DecimalField(**NON_NEGATIVE, required=False)
    payment_type = serializers.ChoiceField(choices=Payment.TYPE_CHOICES, required=False)
    channel = serializers.ChoiceField(choices=Payment.CHANNEL_CHOICES, required=False)


class AllocationLineSerializer(serializers.Serializer):
    sr_no = serializers.CharField()
    entry_id = serializers.UUIDField(allow_null=True)
    amount = serializers.DecimalField(**MONEY)
    cd_amount = serializers.DecimalField(**MONEY, allow_null=True)
    cd_applied = serializers.BooleanField()
    adjusted_original = serializers.DecimalField(**MONEY, allow_null=True)
    extra_amount = serializers.DecimalField(**MONEY, allow_null=True)


class DiscountResultSerializer(serializers.Serializer):
    amount = serializers.DecimalField(**MONEY)
    base_amount = serializers.DecimalField(**MONEY)
    offset = serializers.DecimalField(**MONEY)
    max_available = serializers.DecimalField(**MONEY)
    eligible = serializers.BooleanField()
    percent = serializers.DecimalField(max_digits=8, decimal_places=2)
    mode = serializers.CharField(allow_blank=True)


class PaymentOutcomeSerializer(serializers.Serializer):
    payment = PaymentSerializer()
    discount = DiscountResultSerializer()
    settled = serializers.DecimalField(**MONEY, source="allocation.settled")
    unallocated = serializers.DecimalField(**MONEY, source="allocation.unallocated")


# ============================================================
# CALCULATORS
# ============================================================


class DiscountPreviewSerializer(serializers.Serializer):
    party = serializers.UUIDField()
    entries = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    payment_date = serializers.DateField()
    amount = serializers.DecimalField(**NON_NEGATIVE, required=False, allow_null=True)
    payment_type = serializers.ChoiceField(choices=Payment.TYPE_CHOICES, required=False, allow_null=True)
    cd_mode = serializers.ChoiceField(choices=CD_MODES, required=False, allow_null=True)
    cd_percent = serializers.DecimalField(
        max_digits=6, decimal_places=2, min_value=Decimal("0.00"), required=False, allow_null=True
    )
    cd_amount = serializers.DecimalField(**NON_NEGATIVE, required=False, allow_null=True)


class ReceiptCombinationRequestSerializer(serializers.Serializer):
    party = serializers.UUIDField()
    entries = serializers.ListField(child=serializers.UUIDField(), required=False, allow_empty=False)
    target_amount = serializers.DecimalField(**MONEY, min_value=Decimal("0.01"))
    official_rate = serializers.DecimalField(**MONEY, min_value=Decimal("0.00"))
    extra_rate_per_unit = serializers.DecimalField(**NON_NEGATIVE, required=False, default=Decimal("0.00"))
    extra_base = serializers.ChoiceField(choices=EXTRA_BASES, default=EXTRA_BASE_OUTSTANDING)
    compounded = serializers.BooleanField(default=False)


class ReceiptSerializer(serializers.Serializer):
    sr_no = serializers.CharField()
    entry_id = serializers.UUIDField(source="entry.id")
    normal_amount = serializers.DecimalField(**MONEY)
    extra_amount = serializers.DecimalField(**MONEY)
    official_amount = serializers.DecimalField(**MONEY)
    quantity = serializers.DecimalField(**MONEY)


class CombinationSerializer(serializers.Serializer):
    kind = serializers.CharField()
    size = serializers.IntegerField()
    receipts = ReceiptSerializer(many=True)
    total_official = serializers.DecimalField(**MONEY)
    total_normal = serializers.DecimalField(**MONEY)
    total_extra = serializers.DecimalField(**MONEY)
    total_quantity = serializers.DecimalField(**MONEY)
    difference = serializers.DecimalField(**MONEY)


class SelectionResultSerializer(serializers.Serializer):
    target = serializers.DecimalField(**MONEY)
    combinations = CombinationSerializer(many=True)
    candidates_found = serializers.IntegerField()
    nodes_visited = serializers.IntegerField()
    candidate_cap_hit = serializers.BooleanField()
    budget_exhausted = serializers.BooleanField()
    best_effort = serializers.BooleanField()


class PaymentOptionsRequestSerializer(serializers.Serializer):
    party = serializers.UUIDField(required=False, allow_null=True)
    entries = serializers.ListField(child=serializers.UUIDField(), required=False)
    target_amount = serializers.DecimalField(**MONEY, min_value=Decimal("0.01"))
    min_rate = serializers.DecimalField(**MONEY, min_value=Decimal("0.01"))
    max_rate = serializers.DecimalField(**MONEY, min_value=Decimal("0.01"))
    rate_step = serializers.ChoiceField(choices=RATE_STEPS, default=1)
    allow_paise = serializers.BooleanField(default=False)
    round_figure = serializers.BooleanField(default=False)
    bag_size = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    extra_per_unit = serializers.DecimalField(**NON_NEGATIVE, required=False, default=Decimal("0.00"))
    extra_base = serializers.ChoiceField(choices=EXTRA_BASES, default=EXTRA_BASE_OUTSTANDING)

    def validate(self, attrs):
        if attrs["min_rate"] > attrs["max_rate"]:
            raise serializers.ValidationError({"min_rate": "Minimum rate cannot exceed maximum rate."})
        return attrs


class PaymentOptionSerializer(serializers.Serializer):
    quantity = serializers.DecimalField(**MONEY)
    rate = serializers.DecimalField(**MONEY)
    amount = serializers.DecimalField(**MONEY)
    remaining = serializers.DecimalField(**MONEY)
    bags = serializers.IntegerField(allow_null=True)


class PaymentOptionsResultSerializer(serializers.Serializer):
    target = serializers.DecimalField(**MONEY)
    adjusted_target = serializers.DecimalField(**MONEY)
    base_quantity = serializers.DecimalField(**MONEY)
    options = PaymentOptionSerializer(many=True)


class PartySummarySerializer(serializers.Serializer):
    total_original = serializers.DecimalField(**MONEY)
    total_outstanding = serializers.DecimalField(**MONEY)
    total_paid = serializers.DecimalField(**MONEY)
    total_discount = serializers.DecimalField(**MONEY)
    total_cash_paid = serializers.DecimalField(**MONEY)
    entry_count = serializers.IntegerField()
    outstanding_entry_count = serializers.IntegerField()
