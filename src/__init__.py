"""Job Match: job-candidate compatibility scoring."""

__version__ = "0.1.0"
