"""
Error taxonomy for the presale ledger.

Every error aborts the whole operation it was raised in; the execution guard
restores all state touched by that call before the error reaches the caller.

- ValidationError: malformed input, checked before anything is mutated
- AuthorizationError: caller is not allowed to act on the target
- StateError: the ledger is not in a state that permits the operation
- ExternalCallFailure: a collaborator rejected a transfer mid-operation
"""


class LedgerError(Exception):
    """Base class for all ledger errors."""

    code = "ledger_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationError(LedgerError):
    code = "validation_error"


class InvalidBurnPercent(ValidationError):
    code = "invalid_burn_percent"


class UnknownAsset(ValidationError):
    code = "unknown_asset"


class ZeroAddress(ValidationError):
    code = "zero_address"


class InvalidAddress(ValidationError):
    code = "invalid_address"


class InvalidAmount(ValidationError):
    code = "invalid_amount"


class UnknownPosition(ValidationError):
    code = "unknown_position"


class AuthorizationError(LedgerError):
    code = "unauthorized"


class NotPositionHolder(AuthorizationError):
    code = "not_position_holder"


class StateError(LedgerError):
    code = "state_error"


class NoActivePhase(StateError):
    code = "no_active_phase"


class NoNextPhase(StateError):
    code = "no_next_phase"


class AlreadyActivated(StateError):
    code = "already_activated"


class NotActivated(StateError):
    code = "not_activated"


class AlreadyReleasing(StateError):
    code = "already_releasing"


class PositionReleasing(StateError):
    code = "position_releasing"


class NotReleasing(StateError):
    code = "not_releasing"


class AlreadySettled(StateError):
    code = "already_settled"


class InsufficientBalance(StateError):
    code = "insufficient_balance"


class PositionInvalidated(StateError):
    code = "position_invalidated"


class ReentrantCall(StateError):
    code = "reentrant_call"


class ExternalCallFailure(LedgerError):
    code = "external_call_failure"


class PaymentFailed(ExternalCallFailure):
    code = "payment_failed"


class SettlementPayoutFailed(ExternalCallFailure):
    code = "settlement_payout_failed"
