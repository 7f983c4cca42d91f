"""ecmdiag: diagnostic client for Buell DDFI engine control modules."""

__version__ = "0.1.0"
