# payments/api/views.py

"""
PATH: payments/api/views.py

PAYMENTS API

GET/POST          /api/payments/entries/
GET/PATCH/DELETE  /api/payments/entries/<id>/           (DELETE = soft delete)
GET/POST          /api/payments/payments/
GET/PUT/DELETE    /api/payments/payments/<id>/          (PUT = in-place edit)
POST              /api/payments/discount-preview/
POST              /api/payments/receipt-combinations/
POST              /api/payments/payment-options/
GET               /api/payments/parties/<party_id>/summary/

Service errors map to:
- validation / insufficient outstanding -> 400, not found -> 404,
  persistence -> 503
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.api.filters import OutstandingEntryFilter, PaymentFilter
from payments.api.serializers import (
    DiscountPreviewSerializer,
    DiscountResultSerializer,
    EntryCreateSerializer,
    EntryUpdateSerializer,
    OutstandingEntrySerializer,
    PartySummarySerializer,
    PaymentCreateSerializer,
    PaymentOptionsRequestSerializer,
    PaymentOptionsResultSerializer,
    PaymentOutcomeSerializer,
    PaymentSerializer,
    PaymentUpdateSerializer,
    ReceiptCombinationRequestSerializer,
    SelectionResultSerializer,
)
from payments.models import OutstandingEntry, Payment
from payments.services.entry_service import create_entry, edit_entry, soft_delete_entry
from payments.services.exceptions import (
    EntryNotFoundError,
    InsufficientOutstandingError,
    LedgerLinkError,
    PaymentNotFoundError,
    PaymentPersistenceError,
    PaymentServiceError,
    PaymentValidationError,
)
from payments.services.payment_service import create_payment, delete_payment, update_payment
from payments.services.preview_service import (
    discount_preview,
    party_summary,
    payment_options,
    propose_receipts,
)

_ERROR_STATUS = (
    (PaymentValidationError, status.HTTP_400_BAD_REQUEST),
    (InsufficientOutstandingError, status.HTTP_400_BAD_REQUEST),
    (EntryNotFoundError, status.HTTP_404_NOT_FOUND),
    (PaymentNotFoundError, status.HTTP_404_NOT_FOUND),
    (LedgerLinkError, status.HTTP_409_CONFLICT),
    (PaymentPersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def payment_error_response(exc: PaymentServiceError) -> Response:
    for exc_type, code in _ERROR_STATUS:
        if isinstance(exc, exc_type):
            return Response({"detail": str(exc)}, status=code)
    return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


# ============================================================
# ENTRIES
# ============================================================


class EntryListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = EntryCreateSerializer
    filterset_class = OutstandingEntryFilter

    queryset = OutstandingEntry.objects.select_related("party").filter(is_deleted=False)

    @extend_schema(tags=["payments"], responses=OutstandingEntrySerializer(many=True))
    def get(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(OutstandingEntrySerializer(page, many=True).data)
        return Response(OutstandingEntrySerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["payments"],
        request=EntryCreateSerializer,
        responses={201: OutstandingEntrySerializer, 400: dict, 404: dict},
    )
    def post(self, request, *args, **kwargs):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = dict(s.validated_data)

        try:
            entry = create_entry(party_id=data.pop("party"), **data)
        except PaymentServiceError as exc:
            return payment_error_response(exc)

        return Response(OutstandingEntrySerializer(entry).data, status=status.HTTP_201_CREATED)


class EntryDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = EntryUpdateSerializer
    queryset = OutstandingEntry.objects.select_related("party").filter(is_deleted=False)

    @extend_schema(tags=["payments"], responses=OutstandingEntrySerializer)
    def get(self, request, entry_id, *args, **kwargs):
        entry = self.get_queryset().filter(pk=entry_id).first()
        if entry is None:
            return Response({"detail": "Entry not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(OutstandingEntrySerializer(entry).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["payments"],
        request=EntryUpdateSerializer,
        responses={200: OutstandingEntrySerializer, 400: dict, 404: dict},
    )
    def patch(self, request, entry_id, *args, **kwargs):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            entry = edit_entry(entry_id, **s.validated_data)
        except PaymentServiceError as exc:
            return payment_error_response(exc)

        return Response(OutstandingEntrySerializer(entry).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["payments"], responses={204: None, 404: dict})
    def delete(self, request, entry_id, *args, **kwargs):
        try:
            soft_delete_entry(entry_id)
        except PaymentServiceError as exc:
            return payment_error_response(exc)

        return Response(status=status.HTTP_204_NO_CONTENT)


# ============================================================
# PAYMENTS
# ============================================================


def _payment_kwargs(data: dict) -> dict:
    kwargs = {}
    mapping = {
        "entries": "entry_ids",
        "payment_date": "payment_date",
        "amount": "amount",
        "payment_type": "payment_type",
        "channel": "channel",
        "cd_enabled": "cd_enabled",
        "cd_mode": "cd_mode",
        "cd_percent": "cd_percent",
        "cd_amount": "cd_amount",
        "extra_amounts": "extra_amounts",
        "payment_code": "payment_code",
        "notes": "notes",
    }
    for field, arg in mapping.items():
        if field in data:
            kwargs[arg] = data[field]
    return kwargs


class PaymentListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = PaymentCreateSerializer
    filterset_class = PaymentFilter

    queryset = (
        Payment.objects.select_related("party")
        .prefetch_related("allocations")
        .order_by("-payment_date", "-created_at")
    )

    @extend_schema(tags=["payments"], responses=PaymentSerializer(many=True))
    def get(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(PaymentSerializer(page, many=True).data)
        return Response(PaymentSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["payments"],
        request=PaymentCreateSerializer,
        responses={201: PaymentOutcomeSerializer, 400: dict, 404: dict, 503: dict},
    )
    def post(self, request, *args, **kwargs):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            outcome = create_payment(
                party_id=data["party"],
                ledger_account_id=data.get("ledger_account"),
                **_payment_kwargs(data),
            )
        except PaymentServiceError as exc:
            return payment_error_response(exc)

        return Response(PaymentOutcomeSerializer(outcome).data, status=status.HTTP_201_CREATED)


class PaymentDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = PaymentUpdateSerializer
    queryset = Payment.objects.select_related("party").prefetch_related("allocations")

    @extend_schema(tags=["payments"], responses=PaymentSerializer)
    def get(self, request, payment_id, *args, **kwargs):
        payment = self.get_queryset().filter(pk=payment_id).first()
        if payment is None:
            return Response({"detail": "Payment not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(PaymentSerializer(payment).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["payments"],
        request=PaymentUpdateSerializer,
        responses={200: PaymentOutcomeSerializer, 400: dict, 404: dict},
    )
    def put(self, request, payment_id, *args, **kwargs):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            outcome = update_payment(payment_id, **_payment_kwargs(s.validated_data))
        except PaymentServiceError as exc:
            return payment_error_response(exc)

        return Response(PaymentOutcomeSerializer(outcome).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["payments"], responses={204: None, 404: dict, 409: dict})
    def delete(self, request, payment_id, *args, **kwargs):
        try:
            delete_payment(payment_id)
        except PaymentServiceError as exc:
            return payment_error_response(exc)

        return Response(status=status.HTTP_204_NO_CONTENT)


# ============================================================
# CALCULATORS (read-only)
# ============================================================


class DiscountPreviewView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["payments"], request=DiscountPreviewSerializer, responses=DiscountResultSerializer)
    def post(self, request, *args, **kwargs):
        s = DiscountPreviewSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            result = discount_preview(
                party_id=data["party"],
                entry_ids=data["entries"],
                payment_date=data["payment_date"],
                amount=data.get("amount"),
                payment_type=data.get("payment_type"),
                cd_mode=data.get("cd_mode"),
                cd_percent=data.get("cd_percent"),
                cd_amount=data.get("cd_amount"),
            )
        except PaymentServiceError as exc:
            return payment_error_response(exc)

        return Response(DiscountResultSerializer(result).data, status=status.HTTP_200_OK)


class ReceiptCombinationsView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["payments"],
        request=ReceiptCombinationRequestSerializer,
        responses=SelectionResultSerializer,
    )
    def post(self, request, *args, **kwargs):
        s = ReceiptCombinationRequestSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            result = propose_receipts(
                party_id=data["party"],
                entry_ids=data.get("entries"),
                target_amount=data["target_amount"],
                official_rate=data["official_rate"],
                extra_rate_per_unit=data["extra_rate_per_unit"],
                extra_base=data["extra_base"],
                compounded=data["compounded"],
            )
        except PaymentServiceError as exc:
            return payment_error_response(exc)

        return Response(SelectionResultSerializer(result).data, status=status.HTTP_200_OK)


class PaymentOptionsView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["payments"],
        request=PaymentOptionsRequestSerializer,
        responses=PaymentOptionsResultSerializer,
    )
    def post(self, request, *args, **kwargs):
        s = PaymentOptionsRequestSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = dict(s.validated_data)

        try:
            result = payment_options(
                party_id=data.pop("party", None),
                entry_ids=data.pop("entries", None),
                **data,
            )
        except PaymentServiceError as exc:
            return payment_error_response(exc)

        return Response(PaymentOptionsResultSerializer(result).data, status=status.HTTP_200_OK)


class PartySummaryView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["payments"], responses=PartySummarySerializer)
    def get(self, request, party_id, *args, **kwargs):
        return Response(PartySummarySerializer(party_summary(party_id)).data, status=status.HTTP_200_OK)
