"""Exception hierarchy shared by the services and the HTTP layer."""

from fastapi import HTTPException


class PortalError(Exception):
    """Base error carrying a user-facing message and an HTTP status."""

    status_code = 400
    default_message = 'Something went wrong. Please try again later.'

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_http(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.message)


class ValidationFailed(PortalError):
    status_code = 422
    default_message = 'Some required fields are missing or invalid.'

    def __init__(self, errors: dict[str, str], message: str | None = None):
        self.errors = dict(errors)
        super().__init__(message)

    def to_http(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={'message': self.message, 'errors': self.errors},
        )


class AuthError(PortalError):
    status_code = 401
    default_message = 'Authentication failed.'


class DuplicateAccount(AuthError):
    status_code = 409
    default_message = 'This email is already registered. Please login instead.'


class InvalidCredentials(AuthError):
    default_message = 'Invalid email or password. Please try again.'


class EmailNotConfirmed(AuthError):
    status_code = 403
    default_message = 'Please verify your email address before logging in.'


class SessionInvalid(AuthError):
    default_message = 'Your session has expired. Please sign in again.'


class DataStoreError(PortalError):
    status_code = 503
    default_message = 'Database unavailable. Verify DATABASE_URL and database credentials.'


class StorageError(PortalError):
    status_code = 503
    default_message = 'File storage is unavailable.'


class UploadRejected(StorageError):
    status_code = 400
    default_message = 'File could not be accepted.'


class NotAllowed(PortalError):
    status_code = 403
    default_message = 'Not allowed.'


class ApplicationNotFound(PortalError):
    status_code = 404
    default_message = 'Application not found.'


class ApplicationAlreadyDecided(PortalError):
    status_code = 409
    default_message = 'This application has already been processed.'


class InvalidDecision(PortalError):
    status_code = 400
    default_message = 'Invalid status.'


class RecipientNotFound(PortalError):
    status_code = 404
    default_message = 'Recipient not found.'


class MessageNotFound(PortalError):
    status_code = 404
    default_message = 'Message not found.'


class ProfileNotFound(PortalError):
    status_code = 404
    default_message = 'Profile not found.'
