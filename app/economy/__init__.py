from app.economy.balance.service import BalanceService
from app.economy.promo.admin import PromoAdminService
from app.economy.promo.validation import PromoService
from app.economy.purchases.service import PurchaseService

__all__ = [
    "BalanceService",
    "PromoAdminService",
    "PromoService",
    "PurchaseService",
]
