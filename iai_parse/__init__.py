"""Turn benchmark reports into CSV, one column per run or git revision."""

__version__ = "0.1.0"
