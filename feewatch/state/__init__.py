"""
Refresh state machine and controller runtime module.

Manages the fee refresh lifecycle state machine and its controller.
Handles transitions between IDLE → FETCH_IN_FLIGHT → RETRY_PENDING → POLLING.
"""
