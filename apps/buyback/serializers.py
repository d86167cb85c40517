from rest_framework import serializers

from .models import BuybackOffer, StoreCreditTransaction
from .valuation import ItemDetails


class ItemDetailsSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    condition = serializers.CharField(max_length=50)
    age = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    brand = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    images = serializers.ListField(child=serializers.CharField(), required=False, default=list)

    def to_item(self) -> ItemDetails:
        data = self.validated_data
        return ItemDetails(
            title=data["title"],
            description=data.get("description") or "",
            condition=data["condition"],
            age=data.get("age") or None,
            brand=data.get("brand") or None,
            category=data.get("category") or None,
            images=tuple(data.get("images") or ()),
        )


class BuybackOfferSerializer(serializers.ModelSerializer):
    class Meta:
        model = BuybackOffer
        fields = "__all__"
        read_only_fields = [f.name for f in BuybackOffer._meta.fields]


class StoreCreditTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = StoreCreditTransaction
        fields = "__all__"
