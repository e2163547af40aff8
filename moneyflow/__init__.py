"""moneyflow: personal-finance tracking API with a recurring transaction engine."""

__version__ = "0.1.0"
