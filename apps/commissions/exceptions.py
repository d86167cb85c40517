class SettlementError(ValueError):
    """Base class for commission and payout errors surfaced to API callers."""


class InvalidOrderAmount(SettlementError):
    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid order amount: {value!r}")
        self.value = value


class NoEligibleCommissions(SettlementError):
    def __init__(self, seller_id: object) -> None:
        super().__init__("No eligible commissions for payout")
        self.seller_id = seller_id


class PayoutBelowMinimum(SettlementError):
    def __init__(self, total, minimum) -> None:
        super().__init__(f"Eligible balance {total} is below the minimum payout of {minimum}")
        self.total = total
        self.minimum = minimum


class PayoutNotFound(SettlementError):
    def __init__(self, payout_id: object) -> None:
        super().__init__(f"Payout {payout_id} not found")
        self.payout_id = payout_id


class InvalidPayoutTransition(SettlementError):
    def __init__(self, payout_id: object, current: str, target: str) -> None:
        super().__init__(f"Payout {payout_id} is {current} and cannot be marked {target}")
        self.payout_id = payout_id
        self.current = current
        self.target = target


class PayoutConflict(SettlementError):
    def __init__(self, seller_id: object) -> None:
        super().__init__("Pending commissions changed while the payout was being created")
        self.seller_id = seller_id
