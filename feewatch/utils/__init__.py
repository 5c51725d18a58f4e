"""
Utility functions module.

Shared helpers for timer scheduling used by the refresh controller.

Timer Semantics:
- Every wait (backoff, poll interval) is a scheduled callback, never a blocking call
- Timers are owned by a controller instance, not by process-wide state
- A cancelled timer never fires
"""
