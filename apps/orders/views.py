import logging

from django.db import transaction
from django.utils import timezone
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authentication.permissions import IsAdminOrSeller
from apps.commissions.exceptions import InvalidOrderAmount
from apps.commissions.models import Commission
from apps.commissions.serializers import CommissionSerializer
from apps.commissions.services import create_commission_from_order

from .models import Order
from .serializers import OrderSerializer

logger = logging.getLogger(__name__)


class OrderViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Order.objects.select_related("product", "seller", "buyer").all()
    serializer_class = OrderSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdminOrSeller]
    filterset_fields = ["seller", "status"]
    search_fields = ["order_number"]
    ordering_fields = ["created_at", "total_amount"]

    def get_queryset(self):
        user = self.request.user
        qs = super().get_queryset()
        if user.role == "admin":
            return qs
        return qs.filter(seller=user)

    @action(detail=True, methods=["post"], url_path="complete")
    def complete(self, request, *args, **kwargs):
        """Mark the order delivered and record the seller commission for it."""
        order = self.get_object()
        if order.status == Order.Status.CANCELLED:
            return Response({"detail": "Cancelled orders cannot be completed."}, status=status.HTTP_400_BAD_REQUEST)

        already_recorded = Commission.objects.filter(order=order).exists()
        try:
            with transaction.atomic():
                if order.status != Order.Status.DELIVERED:
                    order.status = Order.Status.DELIVERED
                    order.delivered_at = timezone.now()
                    order.save(update_fields=["status", "delivered_at", "updated_at"])
                commission = create_commission_from_order(order, order.seller)
        except InvalidOrderAmount as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        code = status.HTTP_200_OK if already_recorded else status.HTTP_201_CREATED
        return Response(CommissionSerializer(commission).data, status=code)
