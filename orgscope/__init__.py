"""orgscope: organisational hierarchy and scoped access control."""

__version__ = "1.0.0"
