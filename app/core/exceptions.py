"""Errors raised by the approval and reconciliation engine.

Each error carries the HTTP status the API layer answers with. Races on a
conditional update share the ``already_acted`` code so clients can refresh
and show the current state instead of a generic failure.
"""


class ExpenseEngineError(Exception):
    status_code = 400
    code = "engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(ExpenseEngineError):
    status_code = 404
    code = "not_found"


class PermissionDenied(ExpenseEngineError):
    status_code = 403
    code = "forbidden"


class InvalidState(ExpenseEngineError):
    """Transition attempted from a state that does not permit it."""
    status_code = 400
    code = "invalid_state"


class AlreadyPending(InvalidState):
    code = "already_pending"


class MissingJustification(ExpenseEngineError):
    """A rejection was submitted without its mandatory comment."""
    status_code = 422
    code = "missing_justification"


class TokenAlreadyConsumed(ExpenseEngineError):
    status_code = 409
    code = "already_acted"


class ReportNotPending(TokenAlreadyConsumed):
    pass


class StaleDecision(ExpenseEngineError):
    """Someone else decided the approval step first."""
    status_code = 409
    code = "already_acted"


class RateUnavailable(ExpenseEngineError):
    status_code = 422
    code = "rate_unavailable"

    def __init__(self, currency: str):
        super().__init__(f"No exchange rate available for {currency}")
        self.currency = currency


class MalformedEnvelope(ExpenseEngineError):
    """Approved budget is missing category keys; those keys count as zero."""
    status_code = 422
    code = "malformed_envelope"

    def __init__(self, missing_keys):
        super().__init__(f"Approved budget is missing keys: {', '.join(missing_keys)}")
        self.missing_keys = list(missing_keys)
