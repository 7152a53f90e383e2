from app.db.models.balance_transactions import BalanceTransaction
from app.db.models.courses import Course
from app.db.models.promo_codes import PromoCode
from app.db.models.purchases import Purchase
from app.db.models.reconciliation_runs import ReconciliationRun
from app.db.models.users import User

__all__ = [
    "BalanceTransaction",
    "Course",
    "PromoCode",
    "Purchase",
    "ReconciliationRun",
    "User",
]
