"""
Application-wide constants.
Centralizes table names, grid bounds and setting keys.
"""

# Store collections
RESERVATIONS_TABLE = "reservations"
INVITATIONS_TABLE = "slot_invitations"
TEMPLATES_TABLE = "templates"
TEMPLATE_SLOTS_TABLE = "template_slots"
TEMPLATE_HOURS_TABLE = "template_hours"
WEEK_CONFIGS_TABLE = "week_configs"
WEEK_SLOTS_TABLE = "week_slots"
WEEK_HOURS_TABLE = "week_hours"
OPENED_SLOTS_TABLE = "opened_slots"
SETTINGS_TABLE = "settings"
MEMBERS_TABLE = "members"

# Uniqueness constraints enforced by the store (on_conflict targets)
RESERVATION_KEY = ("slot_id", "date", "user_id")
INVITATION_KEY = ("slot_id", "date", "user_id")
WEEK_CONFIG_KEY = ("week_start",)
OPENED_SLOT_KEY = ("date", "slot_id")
SETTING_KEY = ("key",)
MEMBER_KEY = ("user_id",)

UNIQUE_KEYS = {
    RESERVATIONS_TABLE: RESERVATION_KEY,
    INVITATIONS_TABLE: INVITATION_KEY,
    WEEK_CONFIGS_TABLE: WEEK_CONFIG_KEY,
    OPENED_SLOTS_TABLE: OPENED_SLOT_KEY,
    SETTINGS_TABLE: SETTING_KEY,
    MEMBERS_TABLE: MEMBER_KEY,
}

# Daily slot grid
DAY_START_HOUR = 8
DAY_END_HOUR = 23
SLOT_MINUTES = 30
MAX_DURATION_SLOTS = 8  # 4 hours

# Settings keys
TOTAL_TABLES_SETTING = "total_tables"

# Template names joined on a week that received several templates
TEMPLATE_NAME_SEPARATOR = " + "

# Display limits
MAX_NAME_LENGTH = 100
