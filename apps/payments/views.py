import hmac
import logging

from django.conf import settings
from rest_framework import permissions, status, views
from rest_framework.response import Response

from apps.commissions.exceptions import InvalidPayoutTransition, PayoutNotFound
from apps.commissions.services import complete_payout, fail_payout, mark_payout_processing

from .models import PaymentLog
from .serializers import PayoutWebhookSerializer

logger = logging.getLogger(__name__)

PAYOUT_PROCESSING = "payout.processing"
PAYOUT_PAID = "payout.paid"
PAYOUT_FAILED = "payout.failed"


class PayoutWebhookView(views.APIView):
    """
    Settlement callbacks from the payment provider (Stripe / PayPal relay).

    ``data.payout_id`` identifies our payout; ``data.reference`` is the
    provider's transfer reference and ``data.reason`` the failure message.
    """

    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []

    def _authorized(self, request) -> bool:
        secret = getattr(settings, "PAYOUT_WEBHOOK_SECRET", "")
        if not secret:
            return True
        supplied = request.headers.get("X-Webhook-Secret", "")
        return hmac.compare_digest(supplied.encode(), secret.encode())

    def post(self, request, *args, **kwargs):
        if not self._authorized(request):
            return Response({"detail": "Invalid webhook secret"}, status=status.HTTP_403_FORBIDDEN)

        serializer = PayoutWebhookSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning("Rejected malformed payout webhook: %s", serializer.errors)
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        event = serializer.validated_data["event"]
        data = serializer.validated_data.get("data") or {}
        provider = serializer.validated_data["provider"] or "stripe"
        payout_id = data.get("payout_id")
        reference = data.get("reference") or ""

        # Persist raw webhook for audit/debugging
        PaymentLog.objects.create(provider=provider, event=event, reference=reference, raw_payload=request.data)

        if event not in (PAYOUT_PROCESSING, PAYOUT_PAID, PAYOUT_FAILED) or not payout_id:
            return Response({"status": "ignored"}, status=status.HTTP_200_OK)

        try:
            if event == PAYOUT_PROCESSING:
                mark_payout_processing(payout_id)
            elif event == PAYOUT_PAID:
                complete_payout(payout_id, reference)
            else:
                fail_payout(payout_id, data.get("reason") or "Payment provider reported a failure")
        except PayoutNotFound as exc:
            logger.warning("Webhook %s for unknown payout %s", event, payout_id)
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except InvalidPayoutTransition as exc:
            logger.warning("Webhook %s rejected: %s", event, exc)
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        return Response({"status": "ok"}, status=status.HTTP_200_OK)
