"""SQLAlchemy models package."""

from .auth_identity import AuthSession  # noqa: F401
from .ledger import (  # noqa: F401
    AdminAction,
    Transaction,
    TransactionStatusEnum,
    TransactionTypeEnum,
)
from .promotion import Promotion, PromotionRedemption, PromotionTypeEnum  # noqa: F401
from .reward import Reward, RewardRedemption, RewardRedemptionStatusEnum  # noqa: F401
from .user import User, UserRoleEnum  # noqa: F401
