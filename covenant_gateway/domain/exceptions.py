"""Domain-specific exceptions"""

from typing import Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ConfigurationError(DomainException):
    """Covenant definition cannot be evaluated (unknown type, zero threshold)"""

    def __init__(
        self,
        message: str,
        covenant_id: Optional[str] = None,
        covenant_name: Optional[str] = None,
    ):
        super().__init__(message)
        self.covenant_id = covenant_id
        self.covenant_name = covenant_name


class NoFinancialDataError(DomainException):
    """No financial period exists to run covenant tests against"""

    def __init__(self, loan_id: str):
        super().__init__(f"No financial data available to run covenant tests for loan {loan_id}")
        self.loan_id = loan_id


class NoCovenantsError(DomainException):
    """Loan has no covenants to test"""

    def __init__(self, loan_id: str):
        super().__init__(f"No covenants found for loan {loan_id}")
        self.loan_id = loan_id


class NotificationDeliveryError(DomainException):
    """Alert notification webhook could not be delivered"""

    pass
