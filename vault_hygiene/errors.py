class VaultHygieneError(Exception):
    pass


class PreconditionError(VaultHygieneError):
    """Fatal: the run aborts before anything is mutated."""


class ConfigError(PreconditionError):
    pass


class VaultUnavailableError(PreconditionError):
    pass


class BackupDirMissingError(PreconditionError):
    pass


class ConfirmationDeclined(PreconditionError):
    pass


class PolicyListError(PreconditionError):
    pass


class ItemError(VaultHygieneError):
    """Failure scoped to a single secret or policy; the run continues."""


class BackupVerificationError(ItemError):
    pass


class EmptyPolicyError(ItemError):
    pass
