"""Domain error taxonomy shared by every ledger engine."""

from __future__ import annotations


class LedgerError(RuntimeError):
    """Base exception for balance, promotion and reward failures."""


class NotFoundError(LedgerError):
    """A referenced user, promotion, reward or redemption does not exist."""

    def __init__(self, entity: str, identifier: object) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.identifier = identifier


class LedgerValidationError(LedgerError):
    """Caller input is malformed or insufficient."""


class ConflictError(LedgerError):
    """A business rule refused the operation."""


class PromotionUnavailableError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Promotion not found or expired")


class PromotionAlreadyRedeemedError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Promotion already redeemed")


class PromotionCapacityReachedError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Promotion has reached its redemption limit")


class PromotionNotRedeemableError(ConflictError):
    def __init__(self, promotion_type: str) -> None:
        super().__init__(f"Promotions of type '{promotion_type}' are applied at the counter and cannot be redeemed")
        self.promotion_type = promotion_type


class RewardUnavailableError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Reward is not available")


class OutOfStockError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Reward is out of stock")


class InsufficientPointsError(ConflictError):
    def __init__(self, required: int | None = None, available: int | None = None) -> None:
        super().__init__("Insufficient points")
        self.required = required
        self.available = available


class InsufficientCoinsError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Insufficient coins")


class InvalidRedemptionTransitionError(ConflictError):
    def __init__(self, current_status: str, requested_status: str) -> None:
        super().__init__(f"Cannot transition redemption from {current_status} to {requested_status}")
        self.current_status = current_status
        self.requested_status = requested_status


class ResourceInUseError(ConflictError):
    """Deleting the resource would orphan redemption history."""


class DuplicateUserError(ConflictError):
    def __init__(self) -> None:
        super().__init__("User already exists")


class AuthenticationError(LedgerError):
    """Missing, invalid or expired credentials."""


class PermissionDeniedError(LedgerError):
    """The principal lacks the role the operation requires."""


class StoreFailureError(LedgerError):
    """The store was unreachable or the atomic unit could not commit."""


__all__ = [
    "AuthenticationError",
    "ConflictError",
    "DuplicateUserError",
    "InsufficientCoinsError",
    "InsufficientPointsError",
    "InvalidRedemptionTransitionError",
    "LedgerError",
    "LedgerValidationError",
    "NotFoundError",
    "OutOfStockError",
    "PermissionDeniedError",
    "PromotionAlreadyRedeemedError",
    "PromotionCapacityReachedError",
    "PromotionNotRedeemableError",
    "PromotionUnavailableError",
    "ResourceInUseError",
    "RewardUnavailableError",
    "StoreFailureError",
]
