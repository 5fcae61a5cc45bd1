"""Error taxonomy shared by the services and mapped to HTTP responses in `main`."""


class DomainError(Exception):
    """Base error; subclasses pin the HTTP status and the wire `error` kind."""

    status_code: int = 500
    kind: str = "internal"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class ValidationError(DomainError):
    """Malformed or out-of-range input."""

    status_code = 400
    kind = "validation"


class UnauthenticatedError(DomainError):
    status_code = 401
    kind = "unauthenticated"


class ForbiddenError(DomainError):
    """The actor can see the entity but lacks the capability for the operation."""

    status_code = 403
    kind = "forbidden"


class ScoresLockedError(ForbiddenError):
    """Write attempted against confirmed (locked) score data."""

    kind = "locked"


class NotFoundError(DomainError):
    """Entity absent, or hidden from the actor (membership is not disclosed)."""

    status_code = 404
    kind = "not_found"


class ConflictError(DomainError):
    """Uniqueness violation: duplicate participant, scorecard, or score record."""

    status_code = 409
    kind = "conflict"


class InternalError(DomainError):
    status_code = 500
    kind = "internal"
