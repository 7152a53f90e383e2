class PurchaseError(Exception):
    code = "PURCHASE_ERROR"


class CourseNotAvailableError(PurchaseError):
    code = "COURSE_NOT_AVAILABLE"


class AlreadyPurchasedError(PurchaseError):
    code = "ALREADY_PURCHASED"


class PurchaseUserNotFoundError(PurchaseError):
    code = "USER_NOT_FOUND"


class InsufficientBalanceError(PurchaseError):
    code = "INSUFFICIENT_BALANCE"


class PurchaseStoreError(PurchaseError):
    code = "STORE_FAILURE"


class StudentNotFoundError(PurchaseError):
    code = "STUDENT_NOT_FOUND"


class PurchaseNotFoundError(PurchaseError):
    code = "PURCHASE_NOT_FOUND"
