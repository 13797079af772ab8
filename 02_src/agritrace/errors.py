"""Domain errors raised by the registry, ledger and lineage resolver."""


class TraceabilityError(Exception):
    """Base class for traceability failures."""


class ValidationError(TraceabilityError):
    """Missing/ill-typed field, malformed geo location, negative quantity."""


class NotFoundError(TraceabilityError):
    """Referenced unit does not exist."""


class AuthorizationError(TraceabilityError):
    """Caller lacks the role required by an operation."""


class ConflictError(TraceabilityError):
    """A record with the same identifier already exists."""
