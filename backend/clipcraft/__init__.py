"""Long-form video to ranked, captioned short clips."""

__version__ = "0.1.0"
