SERVER_VERSION = "3.0.0"

# 4-digit codes are drawn from this inclusive range (9000 values).
CODE_MIN = 1000
CODE_MAX = 9999
CODE_MAX_ATTEMPTS = CODE_MAX - CODE_MIN + 1

RECENT_CODES_LIMIT = 1000

SESSION_CODE_TTL_MS = 10 * 60 * 1000
ROOM_MAX_AGE_MS = 60 * 60 * 1000
JANITOR_INTERVAL_S = 5 * 60

DEFAULT_MAX_PLAYERS = 4
OUTBOX_SIZE = 256

ROLE_UNASSIGNED = "unassigned"
ROLE_PRODUCER = "producer"
ROLE_SENSOR = "sensor"
ROLE_OBSERVER = "observer"

ROLES = {ROLE_UNASSIGNED, ROLE_PRODUCER, ROLE_SENSOR, ROLE_OBSERVER}

__all__ = [
    "SERVER_VERSION",
    "CODE_MIN",
    "CODE_MAX",
    "CODE_MAX_ATTEMPTS",
    "RECENT_CODES_LIMIT",
    "SESSION_CODE_TTL_MS",
    "ROOM_MAX_AGE_MS",
    "JANITOR_INTERVAL_S",
    "DEFAULT_MAX_PLAYERS",
    "OUTBOX_SIZE",
    "ROLE_UNASSIGNED",
    "ROLE_PRODUCER",
    "ROLE_SENSOR",
    "ROLE_OBSERVER",
    "ROLES",
]
