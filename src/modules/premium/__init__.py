"""Premium module: subscription-based filtering of premium questions."""

from src.modules.premium.gate import PREMIUM_REQUIRED, PremiumGate

__all__ = ["PremiumGate", "PREMIUM_REQUIRED"]
