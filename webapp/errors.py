"""Error taxonomy surfaced through the error boundary"""
from typing import List, Optional

from utils.validation import Violation


class AppError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class NotAuthenticated(AppError):
    status_code = 401
    default_message = "You must be signed in first!"


class Forbidden(AppError):
    status_code = 403
    default_message = "You do not have permission to do that!"

    def __init__(self, message: Optional[str] = None, redirect_to: str = "/campgrounds"):
        super().__init__(message)
        self.redirect_to = redirect_to


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Invalid submission"

    def __init__(self, violations: List[Violation], message: Optional[str] = None):
        super().__init__(message or "; ".join(str(v) for v in violations))
        self.violations = violations


class UpstreamFailure(AppError):
    status_code = 500
