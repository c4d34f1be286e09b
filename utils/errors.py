"""
Errors raised by the matching engine.

Each error carries a stable ``code`` and a stable user-facing ``message`` so the
calling layer (bot or HTTP) can present actionable text, plus the HTTP status
the API layer renders it with.
"""


class MatchingError(Exception):
    code = "matching_error"
    message = "Unable to process this action"
    status_code = 400

    def __init__(self, message: str = None, **details):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def to_details(self) -> dict:
        return {'code': self.code, **self.details}


# Validation

class SelfSwipeError(MatchingError):
    code = "self_swipe"
    message = "You cannot rate yourself"


class InvalidDecision(MatchingError):
    code = "invalid_decision"
    message = "Decision must be one of: like, dislike, super_like"


class UserNotFound(MatchingError):
    code = "user_not_found"
    message = "User not found"
    status_code = 404


class MatchNotFound(MatchingError):
    code = "match_not_found"
    message = "Match not found"
    status_code = 404


class Forbidden(MatchingError):
    code = "forbidden"
    message = "You are not part of this match"
    status_code = 403


# Policy

class AlreadySwiped(MatchingError):
    code = "already_swiped"
    message = "You already rated this person"
    status_code = 409


class DailyLimitExceeded(MatchingError):
    code = "daily_limit_exceeded"
    message = "You have used all of today's likes. Come back tomorrow!"
    status_code = 429


class RateLimitExceeded(MatchingError):
    code = "rate_limited"
    message = "You are going too fast. Slow down a little"
    status_code = 429


class MatchNotActive(MatchingError):
    code = "match_not_active"
    message = "This match is no longer active"
    status_code = 409


# Contention

class LockTimeout(MatchingError):
    code = "lock_timeout"
    message = "This action is busy right now, try again shortly"
    status_code = 503


class LockUnavailable(LockTimeout):
    """The lock backend could not be reached; the action is refused rather than run unlocked"""
    code = "lock_unavailable"


# Infrastructure

class InternalError(MatchingError):
    code = "internal_error"
    message = "Something went wrong, please try again later"
    status_code = 500
