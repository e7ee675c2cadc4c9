"""Error taxonomy for price acquisition, valuation and metrics persistence."""


class GoldfolioError(Exception):
    """Base class for all goldfolio errors."""


class PriceUnavailable(GoldfolioError):
    """No trustworthy live price could be obtained."""


class UpstreamUnavailable(PriceUnavailable):
    """Every configured provider credential failed."""


class InvalidPriceData(PriceUnavailable):
    """A price failed finiteness or plausibility checks."""


class ComputationSkipped(GoldfolioError):
    """A recomputation for the same key is already in flight."""


class PersistenceFailure(GoldfolioError):
    """A store write failed and was rolled back."""
