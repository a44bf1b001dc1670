"""Constants for the Prayer Reminders integration."""

from datetime import timedelta

DOMAIN = "prayer_reminders"

# Config keys
CONF_USE_LOCATION = "use_location"
CONF_LOCATION_ENTITY = "location_entity"
CONF_METHOD = "method"
CONF_SCHOOL = "school"
CONF_REGIONAL_KEY = "regional_key"
CONF_NOTIFY_SERVICE = "notify_service"

# Per-prayer notification option suffixes, e.g. "fajr_enabled"
OPT_ENABLED = "enabled"
OPT_START = "start_notification"
OPT_REMINDER = "end_reminder"
OPT_SOUND = "sound_mode"

# Ordered list of prayers
PRAYER_ORDER = ["Fajr", "Sunrise", "Dhuhr", "Asr", "Maghrib", "Isha"]

# Prayers that can carry notifications, in scheduling order
NOTIFY_PRAYERS = ["Fajr", "Dhuhr", "Asr", "Maghrib", "Isha"]

# A next prayer in this set means we are inside the evening/night window
EVENING_PRAYERS = {"Fajr", "Isha"}

PRAYER_ICONS = {
    "Fajr": "mdi:weather-sunset-up",
    "Sunrise": "mdi:weather-sunny",
    "Dhuhr": "mdi:mosque",
    "Asr": "mdi:weather-partly-cloudy",
    "Maghrib": "mdi:weather-sunset-down",
    "Isha": "mdi:weather-night",
}

# Qatar MOI name normalization
NAME_MAP = {
    "fajer": "Fajr",
    "fajr": "Fajr",
    "sunrise": "Sunrise",
    "shurooq": "Sunrise",
    "dhuhr": "Dhuhr",
    "zuhr": "Dhuhr",
    "asr": "Asr",
    "maghrib": "Maghrib",
    "isha": "Isha",
    "date": "Date",
}

# Regional source (Qatar MOI)
REGIONAL_URL = "https://portal.moi.gov.qa/MoiPortalRestServices/rest/prayertimings/today/en"
REGIONAL_BOUNDS = (24.4, 26.2, 50.7, 51.7)  # min_lat, max_lat, min_lon, max_lon
REGIONAL_TIMEZONE = "Asia/Qatar"

# The regional feed drops AM/PM for afternoon prayers; hours below these get +12
REGIONAL_HOUR_FLOORS = {
    "Asr": 13,
    "Maghrib": 15,
    "Isha": 18,
}

# Plausible hour-of-day ranges (inclusive) for regional data after correction
PLAUSIBLE_HOURS = {
    "Fajr": (4, 7),
    "Sunrise": (4, 9),
    "Dhuhr": (11, 14),
    "Asr": (13, 18),
    "Maghrib": (15, 21),
    "Isha": (18, 23),
}

# Global source (AlAdhan)
ALADHAN_URL = "https://api.aladhan.com/v1/timings/{date}"

REQUEST_TIMEOUT = 15
USER_AGENT = "Mozilla/5.0"

# Known regions with a fixed IANA timezone; the first matching box wins, so
# Qatar takes the strip it shares with the Bahrain box
REGION_TIMEZONES = [
    ((24.4, 26.2, 50.7, 51.7), "Asia/Qatar"),
    ((25.5, 26.4, 50.3, 50.9), "Asia/Bahrain"),
    ((28.5, 30.1, 46.5, 48.5), "Asia/Kuwait"),
    ((22.6, 26.1, 51.5, 56.4), "Asia/Dubai"),
    ((16.3, 32.2, 34.5, 55.7), "Asia/Riyadh"),
    ((23.6, 37.1, 60.9, 77.8), "Asia/Karachi"),
    ((49.9, 60.9, -8.7, 1.8), "Europe/London"),
]

# AlAdhan calculation methods
CALC_METHODS = {
    0: "Shia Ithna-Ashari",
    1: "University of Islamic Sciences, Karachi",
    2: "Islamic Society of North America",
    3: "Muslim World League",
    4: "Umm Al-Qura University, Makkah",
    5: "Egyptian General Authority of Survey",
    7: "Institute of Geophysics, University of Tehran",
    8: "Gulf Region",
    9: "Kuwait",
    10: "Qatar",
    11: "Majlis Ugama Islam Singapura",
    12: "Union Organization Islamic de France",
    13: "Diyanet Isleri Baskanligi, Turkey",
    14: "Spiritual Administration of Muslims of Russia",
    15: "Moonsighting Committee Worldwide",
}

SCHOOLS = {
    0: "Shafi",
    1: "Hanafi",
}

# Storage
STORAGE_VERSION = 1
STORAGE_KEY = f"{DOMAIN}.cache"

KEY_LOCATION = "location"
KEY_PRAYER_TIMES = "prayer_times"
KEY_FULL_TIMINGS = "full_timings"
KEY_PERMISSION_STATUS = "location_permission"
KEY_LOCATION_ENABLED = "location_enabled"
KEY_SCHOOL = "school"

# Rounded to 2 decimals, roughly 1 km
LOCATION_HASH_PRECISION = 2

# Notifications
NOTIFICATION_MARKER = DOMAIN
KIND_START = "start"
KIND_REMINDER = "reminder"
REMINDER_OFFSET = timedelta(minutes=20)
MIN_LEAD_TIME = timedelta(seconds=5)
TEST_NOTIFICATION_DELAY = timedelta(seconds=10)

SOUND_ATHAN = "athan"
SOUND_BEEP = "beep"
SOUND_VIBRATION = "vibration"
SOUND_SILENT = "silent"

SOUND_MODES = {
    SOUND_ATHAN: "Athan",
    SOUND_BEEP: "Beep",
    SOUND_VIBRATION: "Vibration only",
    SOUND_SILENT: "Silent",
}

# Mode evaluation
MODE_DAY = "day"
MODE_EVENING = "evening"
MODE_EVALUATION_INTERVAL = timedelta(minutes=5)

# Services
SERVICE_REFRESH = "refresh_times"
SERVICE_RESUME = "resume"
SERVICE_SET_MODE_OVERRIDE = "set_mode_override"
SERVICE_RESCHEDULE = "reschedule_notifications"
SERVICE_TEST_NOTIFICATION = "send_test_notification"

SERVICES = (
    SERVICE_REFRESH,
    SERVICE_RESUME,
    SERVICE_SET_MODE_OVERRIDE,
    SERVICE_RESCHEDULE,
    SERVICE_TEST_NOTIFICATION,
)

# Defaults
DEFAULT_METHOD = 2  # Islamic Society of North America
DEFAULT_SCHOOL = 1  # Hanafi
DEFAULT_SOUND = SOUND_ATHAN

# Dispatcher signal sent after each scheduling run, formatted with the entry id
SIGNAL_SCHEDULE_UPDATED = f"{DOMAIN}_schedule_updated_{{}}"

ATTR_MODE = "mode"
MODE_NONE = "none"
