from rest_framework import serializers


class PayoutEventDataSerializer(serializers.Serializer):
    payout_id = serializers.CharField(required=False, allow_blank=True)
    reference = serializers.CharField(required=False, allow_blank=True, max_length=100)
    reason = serializers.CharField(required=False, allow_blank=True)


class PayoutWebhookSerializer(serializers.Serializer):
    event = serializers.CharField(required=False, allow_blank=True, max_length=100, default="")
    provider = serializers.CharField(required=False, allow_blank=True, max_length=50, default="stripe")
    data = PayoutEventDataSerializer(required=False)
