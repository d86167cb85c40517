class ValuationProviderError(Exception):
    """The external valuation provider failed or returned unusable data."""


class BuybackError(ValueError):
    pass


class BuybackOfferNotFound(BuybackError):
    def __init__(self, offer_id: object) -> None:
        super().__init__("Buyback offer not found")
        self.offer_id = offer_id


class BuybackOfferUnavailable(BuybackError):
    def __init__(self, offer_id: object, message: str = "Offer is no longer available") -> None:
        super().__init__(message)
        self.offer_id = offer_id


class BuybackOfferExpired(BuybackError):
    def __init__(self, offer_id: object) -> None:
        super().__init__("Offer has expired")
        self.offer_id = offer_id
