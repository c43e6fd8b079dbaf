"""Beijing housing price-per-area cleaning, feature and model comparison pipeline."""

__version__ = "0.1.0"
