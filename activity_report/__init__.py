"""Field activity report — monthly visit/call counts from a published activity log."""

__version__ = "1.0.0"
