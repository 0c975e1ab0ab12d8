# fleet_compliance/services/errors.py


class ComplianceError(Exception):
    """Base class for errors raised by the compliance services."""


class InputError(ComplianceError):
    """The caller supplied data the engine refuses to classify or schedule."""


class StoreReadError(ComplianceError):
    """A read against the backing store failed; no partial result is produced."""


class ConfigurationError(ComplianceError):
    """Required settings (secrets, signing keys) are missing."""
