"""playpub: promote Android builds through Google Play release tracks."""

__version__ = "0.3.0"
