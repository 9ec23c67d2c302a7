"""
Answerbank HTTP error types

Handlers raise these to end a request with a 4xx status; anything else
raised from a handler is treated as an unhandled failure.
"""


class HTTPError(Exception):
    """Base error carrying an HTTP status and a plain-text message"""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequest(HTTPError):
    status_code = 400


class NotFound(HTTPError):
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class MethodNotAllowed(HTTPError):
    status_code = 405

    def __init__(self, message: str = "Method not allowed"):
        super().__init__(message)
