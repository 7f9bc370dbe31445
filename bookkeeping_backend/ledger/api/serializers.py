# ledger/api/serializers.py

from decimal import Decimal

from rest_framework import serializers

from ledger.models import Account, LedgerPosting


class AccountSerializer(serializers.ModelSerializer):
    class Meta:
        model = Account
        fields = "__all__"
        read_only_fields = ("id", "created_at", "updated_at")


class LedgerPostingSerializer(serializers.ModelSerializer):
    class Meta:
        model = LedgerPosting
        fields = (
            "id",
            "account",
            "date",
            "particulars",
            "remarks",
            "debit",
            "credit",
            "balance",
            "link_group_id",
            "link_strategy",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class PostingCreateSerializer(serializers.Serializer):
    account = serializers.UUIDField()
    date = serializers.DateField()
    particulars = serializers.CharField(required=False, allow_blank=True, default="")
    remarks = serializers.CharField(required=False, allow_blank=True, default="")

    debit = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=Decimal("0.00"), default=Decimal("0.00")
    )
    credit = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=Decimal("0.00"), default=Decimal("0.00")
    )

    link_account = serializers.UUIDField(required=False, allow_null=True)
    link_strategy = serializers.ChoiceField(
        choices=LedgerPosting.LINK_STRATEGIES, required=False, allow_null=True
    )

    def validate(self, attrs):
        if attrs["debit"] == 0 and attrs["credit"] == 0:
            raise serializers.ValidationError("Either debit or credit must be greater than zero.")

        if attrs.get("link_account") and attrs["link_account"] == attrs["account"]:
            raise serializers.ValidationError({"link_account": "Cannot link a posting to its own account."})

        if attrs.get("link_strategy") and not attrs.get("link_account"):
            raise serializers.ValidationError({"link_strategy": "link_strategy requires link_account."})

        return attrs


class PostingUpdateSerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    particulars = serializers.CharField(required=False, allow_blank=True)
    remarks = serializers.CharField(required=False, allow_blank=True)
    debit = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=Decimal("0.00"), required=False
    )
    credit = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=Decimal("0.00"), required=False
    )


class PostingResultSerializer(serializers.Serializer):
    posting = LedgerPostingSerializer()
    counterpart = LedgerPostingSerializer(allow_null=True)
    link_status = serializers.CharField(source="link.status")


class AccountStatementSerializer(serializers.Serializer):
    account = AccountSerializer()
    closing_balance = serializers.DecimalField(max_digits=14, decimal_places=2)
    postings = LedgerPostingSerializer(many=True)
