import uuid
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from django.db import models


class Commission(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PROCESSING = "processing", "Processing"
        PAID = "paid", "Paid"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.OneToOneField(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="commission",
    )
    product = models.ForeignKey(
        "products.Product",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="commissions",
    )
    seller = models.ForeignKey(
        "authentication.User",
        on_delete=models.PROTECT,
        related_name="commissions",
    )
    sale_price = models.DecimalField(max_digits=12, decimal_places=2)
    commission_rate = models.DecimalField(max_digits=5, decimal_places=2)
    commission_amount = models.DecimalField(max_digits=12, decimal_places=2)
    seller_amount = models.DecimalField(max_digits=12, decimal_places=2)
    processing_fee_rate = models.DecimalField(max_digits=5, decimal_places=2)
    processing_fee = models.DecimalField(max_digits=12, decimal_places=2)
    net_seller_amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payout = models.ForeignKey(
        "commissions.Payout",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="commissions",
    )
    paid_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["seller", "status", "created_at"]),
        ]

    def __str__(self) -> str:
        return f"Commission {self.id} ({self.status})"


class Payout(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PROCESSING = "processing", "Processing"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"

    class PaymentMethod(models.TextChoices):
        STRIPE = "stripe", "Stripe"
        PAYPAL = "paypal", "PayPal"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    seller = models.ForeignKey(
        "authentication.User",
        on_delete=models.PROTECT,
        related_name="payouts",
    )
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    total_commissions = models.IntegerField()
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.STRIPE,
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    scheduled_date = models.DateTimeField()
    processed_date = models.DateTimeField(blank=True, null=True)
    payment_reference = models.CharField(max_length=100, blank=True, null=True)
    failure_reason = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Payout {self.id} to {self.seller_id} ({self.status})"


class PayoutSettings(models.Model):
    """
    Singleton row holding the automated payout configuration.

    Always read through ``PayoutSettings.load()`` so the row is created with
    defaults the first time it is needed.
    """

    SINGLETON_ID = 1

    auto_payout_enabled = models.BooleanField(default=False)
    minimum_payout_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("50.00"))
    holding_period_days = models.PositiveIntegerField(default=7)
    default_payment_method = models.CharField(
        max_length=20,
        choices=Payout.PaymentMethod.choices,
        default=Payout.PaymentMethod.STRIPE,
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Payout settings"

    @classmethod
    def load(cls) -> "PayoutSettings":
        obj, _ = cls.objects.get_or_create(pk=cls.SINGLETON_ID)
        return obj

    def to_config(self) -> "PayoutConfig":
        return PayoutConfig(
            auto_payout_enabled=self.auto_payout_enabled,
            minimum_payout_amount=Decimal(self.minimum_payout_amount),
            holding_period_days=self.holding_period_days,
            default_payment_method=self.default_payment_method,
        )


@dataclass(frozen=True)
class PayoutConfig:
    auto_payout_enabled: bool = False
    minimum_payout_amount: Decimal = Decimal("50.00")
    holding_period_days: int = 7
    default_payment_method: str = Payout.PaymentMethod.STRIPE
