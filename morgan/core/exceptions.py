"""
Project exceptions
"""

class MorganError(Exception):
    """Base error for the ingester"""
    pass

class ScheduleError(MorganError):
    """Unknown recurrence or bad schedule request"""
    pass

class ListingError(MorganError):
    """Listing could not be fetched"""
    pass
