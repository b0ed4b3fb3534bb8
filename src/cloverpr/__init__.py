"""cloverpr: Clover coverage summaries for pull requests."""

__version__ = "0.4.0"
