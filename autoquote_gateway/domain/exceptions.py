"""Domain-specific exceptions"""

from typing import List


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input failed validation before reaching business logic"""

    pass


class InvalidBorrowerProfileError(ValidationError):
    """Borrower profile is missing required fields or carries invalid values"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid borrower profile: " + "; ".join(self.errors))


class LenderAPIError(DomainException):
    """Lender endpoint returned an error or is unavailable"""

    pass


class LenderNotFoundError(DomainException):
    """No lender product with the given id exists in the catalog"""

    pass


class SessionNotFoundError(DomainException):
    """No quote session with the given id exists"""

    pass
