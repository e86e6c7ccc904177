"""Student registration desk: validated, duplicate-free intake with pluggable storage."""

__version__ = "1.0.0"
