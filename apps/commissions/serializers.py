from rest_framework import serializers

from .models import Commission, Payout, PayoutSettings


class CommissionSerializer(serializers.ModelSerializer):
    product_title = serializers.CharField(source="product.title", read_only=True, allow_null=True)
    order_number = serializers.CharField(source="order.order_number", read_only=True)

    class Meta:
        model = Commission
        fields = [
            "id",
            "order",
            "order_number",
            "seller",
            "product",
            "product_title",
            "sale_price",
            "commission_rate",
            "commission_amount",
            "seller_amount",
            "processing_fee_rate",
            "processing_fee",
            "net_seller_amount",
            "status",
            "payout",
            "paid_at",
            "created_at",
            "updated_at",
        ]


class PayoutSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payout
        fields = "__all__"


class CreatePayoutSerializer(serializers.Serializer):
    seller_id = serializers.UUIDField(required=False)
    payment_method = serializers.ChoiceField(
        choices=Payout.PaymentMethod.choices,
        default=Payout.PaymentMethod.STRIPE,
    )
    scheduled_date = serializers.DateTimeField(required=False)


class CompletePayoutSerializer(serializers.Serializer):
    payment_reference = serializers.CharField(max_length=100)


class FailPayoutSerializer(serializers.Serializer):
    failure_reason = serializers.CharField(max_length=1000)


class PayoutSettingsSerializer(serializers.ModelSerializer):
    minimum_payout_amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    holding_period_days = serializers.IntegerField(min_value=0, max_value=365)

    class Meta:
        model = PayoutSettings
        fields = [
            "auto_payout_enabled",
            "minimum_payout_amount",
            "holding_period_days",
            "default_payment_method",
            "updated_by",
            "updated_at",
        ]
        read_only_fields = ["updated_by", "updated_at"]
