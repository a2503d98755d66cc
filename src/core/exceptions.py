class LedgerError(Exception):
    """Base class for failures reported by the vault ledger.

    Every subclass carries a stable ``error_code`` so callers can map the
    failure to their own transport (exit codes, HTTP statuses, ...).
    """

    error_code = "ledger_error"

    def __init__(self, error_message: str):
        super().__init__(error_message)
        self.error_message = error_message

    def to_dict(self) -> dict:
        return {"error": self.error_code, "message": self.error_message}


class ValidationError(LedgerError):
    error_code = "validation"


class NotFoundError(LedgerError):
    error_code = "not_found"


class InactiveVaultError(LedgerError):
    error_code = "inactive_vault"


class InvalidAmountError(LedgerError):
    error_code = "invalid_amount"


class InsufficientSharesError(LedgerError):
    error_code = "insufficient_shares"


class NoRewardsError(LedgerError):
    error_code = "no_rewards"
