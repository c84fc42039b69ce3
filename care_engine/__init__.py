"""Care schedule and adherence engine.

This package turns stored medications, intake logs and appointments into
derived, time-sensitive state. The logic is isolated from storage, identity
and UI so every date boundary can be reasoned about and tested directly.
"""
