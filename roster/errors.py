"""Failure taxonomy shared by the request handlers.

Every error carries ``message``, which is safe to show to the end user.
Internal detail (driver errors, file paths) is logged where the error is
raised and never put in ``message``.
"""


class RosterError(Exception):
    message = "System error. Please try again later."

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class Unauthenticated(RosterError):
    message = "Please log in to access this page."


class SessionExpired(RosterError):
    message = "Your session has expired. Please log in again."


class ValidationFailed(RosterError):
    message = "Please correct the highlighted fields."

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__()


class DuplicateKey(RosterError):
    message = "This Student ID already exists in the system."


class NotFound(RosterError):
    message = "Record not found."


class InvalidInput(RosterError):
    message = "Invalid request."


class SystemFailure(RosterError):
    pass


class BackupFailed(SystemFailure):
    message = "Failed to create backup. Please check server configuration."
