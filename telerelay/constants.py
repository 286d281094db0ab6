"""
Application-level constants for hardcoded relay behavior.

These values define protocol details and internal timing and are not meant to
be changed through environment variables. For configurable values (outbox
size, delivery tick, idle room timeout, ...) see telerelay/settings.py.
"""

# ============================================================================
# Room / Delivery Naming
# ============================================================================

# Prefix separating delivery tracking rooms from call rooms of the same name
DELIVERY_ROOM_PREFIX = "delivery:"

# Prefix for call rooms allocated per appointment
APPOINTMENT_ROOM_PREFIX = "appointment-"

# Role label attached to delivery tracking clients
DELIVERY_TRACKER_ROLE = "tracker"

# Display name used for chat messages that carry no name
DEFAULT_CHAT_NAME = "Participant"


# ============================================================================
# Background Task Behavior
# ============================================================================

# Backoff delay (seconds) when a task iteration fails unexpectedly
TASK_ERROR_BACKOFF_SECONDS = 1
