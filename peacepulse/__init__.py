"""
PeacePulse - a personal wellness tracker.

This package provides an observable in-memory store for mood, habits, todos,
sleep, journal and chat records, a best-effort persistence bridge for the
durable collections, and a supportive chat companion with deterministic
fallbacks when the generative-language service is unavailable.
"""

__version__ = "0.1.0"
