import uuid

from django.db import models


class BuybackOffer(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        ACCEPTED = "accepted", "Accepted"
        REJECTED = "rejected", "Rejected"
        EXPIRED = "expired", "Expired"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        "authentication.User",
        on_delete=models.CASCADE,
        related_name="buyback_offers",
    )
    item_title = models.CharField(max_length=255)
    item_description = models.TextField(blank=True, default="")
    item_condition = models.CharField(max_length=50)
    item_age = models.CharField(max_length=50, blank=True, null=True)
    item_brand = models.CharField(max_length=100, blank=True, null=True)
    item_category = models.CharField(max_length=100, blank=True, null=True)
    images = models.JSONField(default=list, blank=True)
    ai_evaluated_retail_price = models.DecimalField(max_digits=12, decimal_places=2)
    buyback_offer_price = models.DecimalField(max_digits=12, decimal_places=2)
    ai_evaluation_data = models.JSONField(default=dict, blank=True)
    valuation_source = models.CharField(max_length=20, default="ai")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    expires_at = models.DateTimeField()
    accepted_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.item_title} ({self.status})"


class StoreCreditTransaction(models.Model):
    TYPE_CHOICES = [
        ("buyback", "Buyback"),
        ("purchase", "Purchase"),
        ("adjustment", "Adjustment"),
    ]

    user = models.ForeignKey(
        "authentication.User",
        on_delete=models.CASCADE,
        related_name="store_credit_transactions",
    )
    transaction_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.TextField()
    reference_id = models.CharField(max_length=100, blank=True, null=True)
    reference_type = models.CharField(max_length=50, blank=True, null=True)
    balance_before = models.DecimalField(max_digits=12, decimal_places=2)
    balance_after = models.DecimalField(max_digits=12, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
