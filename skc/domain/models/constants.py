"""Authority names and field constraints shared across layers."""

ROLE_ADMIN = "ROLE_ADMIN"
ROLE_USER = "ROLE_USER"
ROLE_ANONYMOUS = "ROLE_ANONYMOUS"

SYSTEM_ACCOUNT = "system"
ANONYMOUS_USER = "anonymoususer"

LOGIN_REGEX = r"^[_.@A-Za-z0-9-]*$"
LOGIN_MAX_LENGTH = 50
EMAIL_MIN_LENGTH = 5
EMAIL_MAX_LENGTH = 254
NAME_MAX_LENGTH = 50
IMAGE_URL_MAX_LENGTH = 256
LANG_KEY_MIN_LENGTH = 2
LANG_KEY_MAX_LENGTH = 6

# Length of generated activation/reset keys and initial passwords.
RANDOM_KEY_LENGTH = 20
