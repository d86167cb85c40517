import logging

from rest_framework import generics, permissions, status, views
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle

from apps.authentication.permissions import IsAdmin
from core.pagination import CustomPagination

from .exceptions import BuybackError, BuybackOfferNotFound
from .serializers import BuybackOfferSerializer, ItemDetailsSerializer, StoreCreditTransactionSerializer
from .services import (
    accept_buyback_offer,
    create_buyback_offer,
    get_all_buyback_offers,
    get_buyback_analytics,
    get_user_buyback_offers,
    get_user_store_credit,
    get_user_store_credit_transactions,
    reject_buyback_offer,
)
from .valuation import evaluate_item

logger = logging.getLogger(__name__)


def _limit_param(request, default: int) -> int:
    try:
        limit = int(request.query_params.get("limit", default))
    except (TypeError, ValueError):
        limit = default
    return max(1, min(limit, 100))


def buyback_error_response(exc: BuybackError) -> Response:
    code = status.HTTP_404_NOT_FOUND if isinstance(exc, BuybackOfferNotFound) else status.HTTP_400_BAD_REQUEST
    return Response({"detail": str(exc)}, status=code)


class EvaluateItemView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "buyback_evaluation"

    def post(self, request, *args, **kwargs):
        serializer = ItemDetailsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        # Always answers with a price; provider problems surface as a fallback valuation.
        valuation = evaluate_item(serializer.to_item())
        return Response(valuation.as_dict(), status=status.HTTP_200_OK)


class BuybackOfferListCreateView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "buyback_evaluation"

    def get(self, request, *args, **kwargs):
        offers = get_user_buyback_offers(request.user, limit=_limit_param(request, 20))
        return Response(BuybackOfferSerializer(offers, many=True).data)

    def post(self, request, *args, **kwargs):
        serializer = ItemDetailsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        offer = create_buyback_offer(request.user, serializer.to_item())
        return Response(BuybackOfferSerializer(offer).data, status=status.HTTP_201_CREATED)


class AcceptBuybackOfferView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, offer_id, *args, **kwargs):
        try:
            credit = accept_buyback_offer(offer_id, request.user)
        except BuybackError as exc:
            return buyback_error_response(exc)
        return Response(
            {
                "detail": "Buyback offer accepted successfully",
                "store_credit_added": str(credit.amount),
                "transaction": StoreCreditTransactionSerializer(credit).data,
            },
            status=status.HTTP_200_OK,
        )


class RejectBuybackOfferView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, offer_id, *args, **kwargs):
        try:
            reject_buyback_offer(offer_id, request.user)
        except BuybackError as exc:
            return buyback_error_response(exc)
        return Response({"detail": "Offer rejected successfully"}, status=status.HTTP_200_OK)


class BuybackAnalyticsView(views.APIView):
    permission_classes = [IsAdmin]

    def get(self, request, *args, **kwargs):
        return Response(get_buyback_analytics())


class StoreCreditView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, *args, **kwargs):
        transactions = get_user_store_credit_transactions(request.user, limit=_limit_param(request, 50))
        return Response(
            {
                "balance": str(get_user_store_credit(request.user)),
                "transactions": StoreCreditTransactionSerializer(transactions, many=True).data,
            }
        )


class AdminBuybackOfferListView(generics.ListAPIView):
    serializer_class = BuybackOfferSerializer
    permission_classes = [IsAdmin]
    pagination_class = CustomPagination

    def get_queryset(self):
        return get_all_buyback_offers(status=self.request.query_params.get("status"))
