class BalanceError(Exception):
    code = "BALANCE_ERROR"


class BalanceUserNotFoundError(BalanceError):
    code = "USER_NOT_FOUND"


class LedgerInvariantError(BalanceError):
    code = "NEGATIVE_BALANCE"


class BalanceCourseNotFoundError(BalanceError):
    code = "COURSE_NOT_FOUND"
