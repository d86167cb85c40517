from django.db import models


class PaymentLog(models.Model):
    provider = models.CharField(max_length=50)
    event = models.CharField(max_length=100)
    reference = models.CharField(max_length=100, blank=True, default="")
    raw_payload = models.JSONField()
    created_at = models.DateTimeField(auto_now_add=True)
