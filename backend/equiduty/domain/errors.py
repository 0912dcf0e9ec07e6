class CapacityDomainError(Exception):
    """Base class for facility capacity errors."""


class FacilityNotFoundError(CapacityDomainError):
    pass


class InvalidTimeRangeError(CapacityDomainError, ValueError):
    pass


class HorsesRequiredError(CapacityDomainError):
    pass


class TooManyHorsesError(CapacityDomainError):
    pass


class CapacityCheckError(CapacityDomainError):
    """The store or the sweep failed; validity could not be determined."""
