"""prcov: coverage of the lines changed in a pull request."""

__version__ = "0.1.0"
