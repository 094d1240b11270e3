"""Exceptions raised by the availability stores and engine.

These never leave the public engine entry points; they are turned into
tagged results there, or into HTTP errors by the booking routes.
"""


class AvailabilityError(Exception):
    """Base class for availability failures."""


class NotFoundError(AvailabilityError):
    """A row the computation depends on does not exist."""


class BusinessNotFoundError(NotFoundError):
    def __init__(self, business_id: int):
        super().__init__('Business not found.')
        self.business_id = business_id


class ServiceNotFoundError(NotFoundError):
    def __init__(self, service_id: int):
        super().__init__('Service not found.')
        self.service_id = service_id


class InvalidServiceDurationError(AvailabilityError):
    def __init__(self, service_id: int, duration_minutes):
        super().__init__('Service has no valid duration.')
        self.service_id = service_id
        self.duration_minutes = duration_minutes
