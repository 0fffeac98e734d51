"""Feature gap comparator: report tracker features merged in one branch group but not another."""

__version__ = "0.1.0"
