"""Errors surfaced to learners as JSON responses.

Every failure in the labs and the scoring core is local and recoverable, so
nothing here is fatal: the handler registered in ``create_app`` turns each
error into a status code and a message the client can show.
"""


class AcademyError(Exception):
    status_code = 500
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message, "retryable": self.retryable}


class InvalidRequest(AcademyError):
    status_code = 400


class InvalidConfiguration(InvalidRequest):
    """A lab was configured in a way it cannot run, e.g. an empty charset."""


class Forbidden(AcademyError):
    status_code = 403


class NotFound(AcademyError):
    status_code = 404


class DependencyUnavailable(AcademyError):
    """The database or the AI service failed; the learner may retry."""

    status_code = 503
    retryable = True
