from app.db.repo.courses_repo import CoursesRepo
from app.db.repo.ledger_repo import LedgerRepo
from app.db.repo.promo_repo import PromoRepo
from app.db.repo.purchases_repo import PurchasesRepo
from app.db.repo.reconciliation_runs_repo import ReconciliationRunsRepo
from app.db.repo.users_repo import UsersRepo

__all__ = [
    "CoursesRepo",
    "LedgerRepo",
    "PromoRepo",
    "PurchasesRepo",
    "ReconciliationRunsRepo",
    "UsersRepo",
]
