"""Global constants for the santadraw application."""

# Collections
GROUPS_COLLECTION = "groups"

# Firestore auto-generated document ids are 20 characters long, so shorter
# codes are never looked up while the user is still typing.
JOIN_CODE_MIN_LENGTH = 20

# Draw
MIN_DRAW_MEMBERS = 2
# Draw buttons from this many recent renders (tabs, reloads) stay usable.
MAX_OPEN_DRAW_TOKENS = 10

# Display fallbacks
ANONYMOUS_DISPLAY_NAME = "Anonymous gifter"
UNTITLED_GROUP_NAME = "Untitled group"
UNKNOWN_ORGANIZER_NAME = "Unknown organizer"
MYSTERY_RECIPIENT_NAME = "Mystery Santa"

# Custom fields
FIELD_ID_PREFIX = "field"
FIELD_ID_SUFFIX_LENGTH = 9

# Session keys
SESSION_USER_ID = "user_id"
SESSION_IDENTITY = "identity"
SESSION_SELECTED_GROUP = "selected_group_id"
SESSION_GROUP_NOTICES = "group_notices"
SESSION_DRAW_TOKENS = "draw_tokens"
