"""Smart City API: citizen accounts, sessions and accident reporting."""

__version__ = "1.0.0"
