class ApiError(Exception):
    """A REST call failed or the server answered ``success: false``."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class PermissionDenied(Exception):
    """The platform refused a location permission."""
