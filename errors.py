"""Error taxonomy shared by the API server and the API client.

Each error knows the HTTP status it maps to and how to render itself as the
JSON body the server sends back (``{'error': message, ...}``).
"""


class QuizArenaError(Exception):
    status_code = 500
    default_message = 'Something went wrong'

    def __init__(self, message=None, **details):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_dict(self):
        body = {'error': self.message}
        body.update(self.details)
        return body


class ValidationError(QuizArenaError):
    status_code = 400
    default_message = 'Invalid input'


class InvalidRequest(ValidationError):
    default_message = 'Invalid request'


class Unauthorized(QuizArenaError):
    status_code = 401
    default_message = 'Not logged in'


class NotFound(QuizArenaError):
    status_code = 404
    default_message = 'Not found'


class Conflict(QuizArenaError):
    status_code = 409
    default_message = 'Conflict'


class EmailTaken(Conflict):
    default_message = 'Email is already registered'


class AlreadyFriends(Conflict):
    default_message = 'You are already friends'


class DuplicatePending(Conflict):
    default_message = 'A friend request is already pending'


class NameChangeCooldown(Conflict):
    # The name-change endpoint has always answered 403 for the cooldown
    status_code = 403

    def __init__(self, days_left):
        super().__init__(
            f'You can change your name again in {days_left} days',
            daysLeft=days_left,
        )
        self.days_left = days_left


class InternalError(QuizArenaError):
    status_code = 500
    default_message = 'Server error'


ERRORS_BY_STATUS = {
    400: ValidationError,
    401: Unauthorized,
    403: Conflict,
    404: NotFound,
    409: Conflict,
}


def error_from_response(status_code, body):
    """Rebuild a taxonomy error from a status code and JSON error body."""
    body = dict(body or {})
    message = body.pop('error', None)
    if status_code == 403 and 'daysLeft' in body:
        return NameChangeCooldown(body['daysLeft'])
    error_class = ERRORS_BY_STATUS.get(status_code, InternalError)
    return error_class(message, **body)
