"""
Error types shared by the calendar clients, the web endpoint and the tools.
"""


class CalendarServerError(Exception):
    """Base exception for calendar server errors"""
    pass


class ConfigurationError(CalendarServerError):
    """Client secret file missing or malformed"""
    pass


class AuthorizationError(CalendarServerError):
    """Code exchange or token refresh failed"""
    pass


class ValidationError(CalendarServerError):
    """Malformed date/time input"""
    pass


class UpstreamError(CalendarServerError):
    """Calendar API rejected the call, or the app is not authorized yet"""
    pass
