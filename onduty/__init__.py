"""OnDuty Pro: shift-change and leave request workflow."""

__version__ = "1.0.0"
