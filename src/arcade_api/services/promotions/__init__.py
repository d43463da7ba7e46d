"""Promotion catalog and redemption."""

from .service import PromotionGrant, PromotionRedemptionResult, PromotionService, compute_grant

__all__ = ["PromotionGrant", "PromotionRedemptionResult", "PromotionService", "compute_grant"]
