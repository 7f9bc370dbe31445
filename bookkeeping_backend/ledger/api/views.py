# ledger/api/views.py

"""
PATH: ledger/api/views.py

LEDGER API

GET/POST   /api/ledger/accounts/
GET/PATCH  /api/ledger/accounts/<id>/
GET        /api/ledger/accounts/<id>/statement/   newest-first + running balance
GET/POST   /api/ledger/postings/                  (POST may carry link_account)
GET/PATCH/DELETE /api/ledger/postings/<id>/       (propagates to the counterpart)

Service errors map to:
- validation -> 400, not found -> 404, missing counterpart (strict) -> 409,
  persistence -> 503
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import ModelViewSet

from ledger.api.filters import AccountFilter, LedgerPostingFilter
from ledger.api.serializers import (
    AccountSerializer,
    AccountStatementSerializer,
    LedgerPostingSerializer,
    PostingCreateSerializer,
    PostingResultSerializer,
    PostingUpdateSerializer,
)
from ledger.models import Account, LedgerPosting
from ledger.services.exceptions import (
    CounterpartNotFoundError,
    LedgerPersistenceError,
    LedgerServiceError,
    LedgerValidationError,
    PostingNotFoundError,
)
from ledger.services.posting_service import (
    account_statement,
    create_posting,
    delete_posting,
    update_posting,
)

_ERROR_STATUS = (
    (LedgerValidationError, status.HTTP_400_BAD_REQUEST),
    (PostingNotFoundError, status.HTTP_404_NOT_FOUND),
    (CounterpartNotFoundError, status.HTTP_409_CONFLICT),
    (LedgerPersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def ledger_error_response(exc: LedgerServiceError) -> Response:
    for exc_type, code in _ERROR_STATUS:
        if isinstance(exc, exc_type):
            return Response({"detail": str(exc)}, status=code)
    return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


@extend_schema(tags=["ledger"])
class AccountViewSet(ModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = AccountSerializer
    filterset_class = AccountFilter
    http_method_names = ["get", "post", "patch", "head", "options"]

    queryset = Account.objects.all().order_by("name")

    @extend_schema(responses=AccountStatementSerializer)
    @action(detail=True, methods=["get"], url_path="statement")
    def statement(self, request, pk=None):
        try:
            result = account_statement(self.get_object().pk)
        except LedgerServiceError as exc:
            return ledger_error_response(exc)

        return Response(AccountStatementSerializer(result).data, status=status.HTTP_200_OK)


class PostingListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = PostingCreateSerializer
    filterset_class = LedgerPostingFilter

    queryset = LedgerPosting.objects.select_related("account").order_by("-date", "-created_at", "-id")

    @extend_schema(tags=["ledger"], responses=LedgerPostingSerializer(many=True))
    def get(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(LedgerPostingSerializer(page, many=True).data)
        return Response(LedgerPostingSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["ledger"],
        request=PostingCreateSerializer,
        responses={201: PostingResultSerializer, 400: dict, 503: dict},
    )
    def post(self, request, *args, **kwargs):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            result = create_posting(
                account_id=data["account"],
                date=data["date"],
                particulars=data.get("particulars", ""),
                remarks=data.get("remarks", ""),
                debit=data["debit"],
                credit=data["credit"],
                link_account_id=data.get("link_account"),
                link_strategy=data.get("link_strategy"),
            )
        except LedgerServiceError as exc:
            return ledger_error_response(exc)

        return Response(PostingResultSerializer(result).data, status=status.HTTP_201_CREATED)


class PostingDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = PostingUpdateSerializer
    queryset = LedgerPosting.objects.select_related("account")

    @extend_schema(tags=["ledger"], responses=LedgerPostingSerializer)
    def get(self, request, posting_id, *args, **kwargs):
        posting = LedgerPosting.objects.filter(pk=posting_id).first()
        if posting is None:
            return Response({"detail": "Posting not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(LedgerPostingSerializer(posting).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["ledger"],
        request=PostingUpdateSerializer,
        responses={200: PostingResultSerializer, 400: dict, 404: dict, 409: dict},
    )
    def patch(self, request, posting_id, *args, **kwargs):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            result = update_posting(posting_id, **s.validated_data)
        except LedgerServiceError as exc:
            return ledger_error_response(exc)

        return Response(PostingResultSerializer(result).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["ledger"], responses={204: None, 404: dict, 409: dict})
    def delete(self, request, posting_id, *args, **kwargs):
        try:
            delete_posting(posting_id)
        except LedgerServiceError as exc:
            return ledger_error_response(exc)

        return Response(status=status.HTTP_204_NO_CONTENT)
