"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Missing or invalid input, or a business rule rejected the request"""

    pass


class NotFoundError(DomainException):
    """No record matches the given identifier"""

    pass


class StoreError(DomainException):
    """The persistence layer failed"""

    pass


class ConcurrentUpdateError(StoreError):
    """Another writer changed the record between read and write"""

    pass
