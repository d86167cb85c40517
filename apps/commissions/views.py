import logging

from rest_framework import permissions, status, views, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authentication.permissions import IsAdmin, IsAdminOrSeller

from .exceptions import InvalidPayoutTransition, PayoutNotFound, SettlementError
from .models import Commission, Payout, PayoutSettings
from .scheduler import process_automated_payouts
from .serializers import (
    CommissionSerializer,
    CompletePayoutSerializer,
    CreatePayoutSerializer,
    FailPayoutSerializer,
    PayoutSerializer,
    PayoutSettingsSerializer,
)
from .services import (
    complete_payout,
    create_payout,
    fail_payout,
    get_commission_analytics,
    get_payout_commissions,
    get_seller_payouts,
    load_payout_config,
    update_payout_settings,
)

logger = logging.getLogger(__name__)


def settlement_error_response(exc: SettlementError) -> Response:
    if isinstance(exc, PayoutNotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, InvalidPayoutTransition):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return Response({"detail": str(exc)}, status=code)


class CommissionViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = CommissionSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdminOrSeller]
    filterset_fields = ["status", "seller", "payout"]
    ordering_fields = ["created_at", "net_seller_amount"]

    def get_queryset(self):
        user = self.request.user
        qs = Commission.objects.select_related("order", "product")
        if user.role == "admin":
            return qs
        return qs.filter(seller=user)


class PayoutViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = PayoutSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdminOrSeller]
    filterset_fields = ["status", "seller", "payment_method"]
    ordering_fields = ["created_at", "total_amount"]

    def get_queryset(self):
        user = self.request.user
        if user.role == "admin":
            return Payout.objects.all()
        return get_seller_payouts(user.id)

    def create(self, request, *args, **kwargs):
        serializer = CreatePayoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        user = request.user
        if user.role == "admin":
            seller_id = data.get("seller_id")
            if seller_id is None:
                return Response({"detail": "seller_id is required"}, status=status.HTTP_400_BAD_REQUEST)
        else:
            seller_id = user.id

        config = load_payout_config()
        try:
            payout = create_payout(
                seller_id,
                payment_method=data["payment_method"],
                scheduled_date=data.get("scheduled_date"),
                holding_period_days=config.holding_period_days,
            )
        except SettlementError as exc:
            return settlement_error_response(exc)

        return Response(PayoutSerializer(payout).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"], url_path="commissions")
    def commissions(self, request, *args, **kwargs):
        payout = self.get_object()
        try:
            commissions = get_payout_commissions(payout.id)
        except SettlementError as exc:
            return settlement_error_response(exc)
        return Response(CommissionSerializer(commissions, many=True).data)

    @action(detail=True, methods=["post"], url_path="complete", permission_classes=[IsAdmin])
    def complete(self, request, pk=None, *args, **kwargs):
        serializer = CompletePayoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            payout = complete_payout(pk, serializer.validated_data["payment_reference"])
        except SettlementError as exc:
            return settlement_error_response(exc)
        return Response(PayoutSerializer(payout).data)

    @action(detail=True, methods=["post"], url_path="fail", permission_classes=[IsAdmin])
    def fail(self, request, pk=None, *args, **kwargs):
        serializer = FailPayoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            payout = fail_payout(pk, serializer.validated_data["failure_reason"])
        except SettlementError as exc:
            return settlement_error_response(exc)
        return Response(PayoutSerializer(payout).data)

    @action(detail=False, methods=["post"], url_path="run-automated", permission_classes=[IsAdmin])
    def run_automated(self, request, *args, **kwargs):
        run = process_automated_payouts()
        return Response(run.as_dict(), status=status.HTTP_200_OK)


class CommissionAnalyticsView(views.APIView):
    permission_classes = [IsAdmin]

    def get(self, request, *args, **kwargs):
        try:
            analytics = get_commission_analytics()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to build commission analytics")
            return Response(
                {"detail": "Failed to fetch commission analytics"},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return Response(analytics)


class PayoutSettingsView(views.APIView):
    permission_classes = [IsAdmin]

    def get(self, request, *args, **kwargs):
        return Response(PayoutSettingsSerializer(PayoutSettings.load()).data)

    def patch(self, request, *args, **kwargs):
        serializer = PayoutSettingsSerializer(PayoutSettings.load(), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        payout_settings = update_payout_settings(dict(serializer.validated_data), updated_by=request.user)
        return Response(PayoutSettingsSerializer(payout_settings).data)
