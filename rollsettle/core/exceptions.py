"""
rollsettle Exception Hierarchy

All exceptions inherit from RollSettleError for easy catching.
Every one of them is fatal to the enclosing ledger transaction.
"""


class RollSettleError(Exception):
    """Base exception for all rollsettle errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(RollSettleError):
    """Raised when data validation fails"""
    pass


class MalformedInput(ValidationError):
    """Raised when caller-supplied encoded input cannot be decoded"""
    pass


class StateVersionError(ValidationError):
    """Raised when persisted state carries an unsupported layout version"""
    pass


class AuthorizationError(RollSettleError):
    """Raised when authorization fails"""
    pass


class AssignmentExpiredOrInvalid(AuthorizationError):
    """Raised when a prover assignment is expired or bound to another block"""
    pass


class InvalidSignature(AuthorizationError):
    """Raised when the assigned prover did not authorize the commitment hash"""
    pass


class Unauthorized(AuthorizationError):
    """Raised when the caller is not permitted to invoke an operation"""
    pass


class ReentrantCall(AuthorizationError):
    """Raised when an engine is re-entered while a call is in flight"""
    pass


class SettlementError(RollSettleError):
    """Raised when settlement fails"""
    pass


class InsufficientFee(SettlementError):
    """Raised when the attached native value does not cover fee and tip"""
    pass


class TierNotFound(SettlementError):
    """Raised when the assignment carries no fee for the required tier"""
    pass


class ClaimError(RollSettleError):
    """Raised when a claim fails"""
    pass


class AlreadyClaimed(ClaimError):
    """Raised when a claim payload has already been consumed"""
    pass


class InvalidProof(ClaimError):
    """Raised when a merkle proof does not reconstruct the published root"""
    pass


class ClaimNotOngoing(ClaimError):
    """Raised when a claim is attempted outside the configured window"""
    pass


class LedgerError(RollSettleError):
    """Raised when ledger operations fail"""
    pass


class InsufficientBalance(LedgerError):
    """Raised when an account or allowance cannot cover a transfer"""
    pass


class TransferFailed(LedgerError):
    """Raised when a native value transfer to a recipient fails"""
    pass


class OutOfGas(LedgerError):
    """Raised when a recipient callback exceeds its gas budget"""
    pass
