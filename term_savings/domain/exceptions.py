"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class PlanNotFoundError(DomainException):
    """No savings plan exists with the requested id"""

    pass


class PlanInactiveError(DomainException):
    """Savings plan is closed to new deposits"""

    pass


class InvalidPrincipalError(DomainException):
    """Principal is not a positive decimal amount"""

    pass


class AmountTooLowError(DomainException):
    """Principal is below the plan's minimum amount"""

    pass


class AmountTooHighError(DomainException):
    """Principal is above the plan's maximum amount"""

    pass


class NotMaturedError(DomainException):
    """Deposit has not reached the Matured state yet"""

    pass


class AlreadyMaturedError(DomainException):
    """Deposit has matured and can no longer be withdrawn early"""

    pass


class AlreadyFinalizedError(DomainException):
    """Deposit was already claimed or withdrawn early"""

    pass


class ConcurrentTransitionError(DomainException):
    """Deposit changed state under another request; the caller may retry"""

    pass
