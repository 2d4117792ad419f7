"""caltrack: daily energy expenditure and weight projection calculator."""

__version__ = "0.1.0"
