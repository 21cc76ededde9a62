"""
Custom exception classes for the StorySlides backend.

Services raise these; handlers registered in storyslides.main turn them into
JSON error responses.
"""


class StorySlidesError(Exception):
    """
    Base exception class for all StorySlides-specific exceptions.
    """

    def __init__(self, message: str, error_code: str = None):
        """
        Initialize the base exception.

        Args:
            message (str): Human-readable error message.
            error_code (str, optional): Machine-readable error code.
        """
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class ConfigurationError(StorySlidesError):
    """
    Raised when required environment variables are missing or invalid.
    """
    pass


class InvalidRequestError(StorySlidesError):
    """
    Raised when a request is well-formed JSON but asks for something the
    service cannot do (unknown action, missing action payload, bad value).
    """
    pass


class AuthorizationError(StorySlidesError):
    """
    Raised when the caller is not an admin, or lacks the role an admin
    operation requires.
    """
    pass


class PersistenceError(StorySlidesError):
    """
    Raised when a primary write or read against the store fails.

    ``stage`` names the step that failed (for example ``"replace_slides"``)
    so callers and logs can tell the steps of a multi-step write apart.
    """

    def __init__(self, message: str, stage: str = None, error_code: str = None):
        self.stage = stage
        super().__init__(message, error_code=error_code)
