class PromoError(Exception):
    code = "PROMO_ERROR"


class PromoInvalidCodeError(PromoError):
    code = "INVALID_CODE"


class PromoInactiveError(PromoError):
    code = "INACTIVE_CODE"


class PromoWrongCourseError(PromoError):
    code = "WRONG_COURSE"


class PromoAlreadyUsedError(PromoError):
    code = "ALREADY_USED"


class PromoCourseNotFoundError(PromoError):
    code = "COURSE_NOT_FOUND"


class PromoNotFoundError(PromoError):
    code = "PROMO_NOT_FOUND"


class PromoInvalidQuantityError(PromoError):
    code = "INVALID_QUANTITY"


class PromoCodeGenerationError(PromoError):
    code = "CODE_GENERATION_FAILED"
