"""Reward catalog and redemption."""

from .service import RewardRedemptionResult, RewardService, generate_redemption_code

__all__ = ["RewardRedemptionResult", "RewardService", "generate_redemption_code"]
