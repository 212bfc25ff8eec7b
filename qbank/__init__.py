"""Single-user multiple-choice question bank with per-topic accuracy."""

__version__ = "0.1.0"
