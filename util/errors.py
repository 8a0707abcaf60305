class BlogError(Exception):
    """
    Base class of every failure the API reports to its callers.
    """

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class Unauthenticated(BlogError):
    status_code = 401
    message = "Could not validate credentials"


class Forbidden(BlogError):
    status_code = 400
    message = "You are not the author"


class NotFound(BlogError):
    status_code = 404
    message = "Not found"


class UploadError(BlogError):
    status_code = 500
    message = "Error uploading to storage"


class ValidationError(BlogError):
    status_code = 400
    message = "Validation error"
