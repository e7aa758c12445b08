# src/influencer_roi/errors.py


class InfluencerROIError(Exception):
    """Base class for all errors raised by influencer_roi."""


class DataIntegrityError(InfluencerROIError, ValueError):
    """Source tables are inconsistent (unknown influencer, bad values, duplicates)."""


class InvalidBasisError(DataIntegrityError):
    """A payout contract carries a basis other than 'post' or 'order'."""


class QueryValidationError(InfluencerROIError, ValueError):
    """A report view was called with an unknown filter, sort field or limit."""


class ConfigError(InfluencerROIError, ValueError):
    """Configuration value could not be parsed."""
