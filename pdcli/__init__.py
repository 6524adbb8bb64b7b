"""pdcli: PagerDuty command-line client with a rate-limited batch executor."""

__version__ = "0.1.0"
