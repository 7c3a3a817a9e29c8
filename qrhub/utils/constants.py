# Redis key TTLs
ONE_DAY_SECONDS = 86_400  # 60 * 60 * 24
TWO_DAYS_SECONDS = 172_800  # 60 * 60 * 24 * 2

# Optimistic (WATCH) attempts for guarded counter writes
COUNTER_WRITE_MAX_ATTEMPTS = 3

# Application environment variables
APP_ENV_ENV = 'APP_ENV'
APP_NAME_ENV = 'APP_NAME'
AWS_SAM_LOCAL_ENV = 'AWS_SAM_LOCAL'
LOG_LEVEL_ENV = 'LOG_LEVEL'
PUBLIC_BASE_URL_ENV = 'PUBLIC_BASE_URL'

# AppConfig: identifiers of the deployed configuration document
APPCONFIG_APP_ID_ENV = 'APPCONFIG_APP_ID'
APPCONFIG_ENV_ID_ENV = 'APPCONFIG_ENV_ID'
APPCONFIG_PROFILE_ID_ENV = 'APPCONFIG_PROFILE_ID'

# AppConfig: local agent used by `sam local`
APPCONFIG_AGENT_URL_ENV = 'APPCONFIG_AGENT_URL'
APPCONFIG_PROFILE_NAME_ENV = 'APPCONFIG_PROFILE_NAME'

# Short code shape accepted on public routes
SHORT_CODE_MIN_LENGTH = 6
SHORT_CODE_MAX_LENGTH = 20
SHORT_CODE_PATTERN = r'^[a-zA-Z0-9-]+$'

# Rate limiting: max scans per (ip, qr code) within the trailing window
DEFAULT_RATE_LIMIT_MAX_SCANS = 10
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 60

# Geolocation providers
DEFAULT_GEOLOCATION_TIMEOUT_SECONDS = 3.0
DEFAULT_GEOLOCATION_PRIMARY_URL = 'http://ip-api.com/json'
DEFAULT_GEOLOCATION_BACKUP_URL = 'https://ipapi.co'
DEFAULT_GEOLOCATION_BATCH_URL = 'http://ip-api.com/batch'

# Redis client timeouts (seconds)
DEFAULT_REDIS_SOCKET_TIMEOUT = 2.0

# Preview page countdown before the client-side redirect
DEFAULT_REDIRECT_DELAY_SECONDS = 3

# Recorded in place of a missing or malformed client IP
UNKNOWN_IP_ADDRESS = '0.0.0.0'

# Fingerprint date buckets (uniqueness granularity)
FINGERPRINT_BUCKETS = ('daily', 'hourly', 'monthly', 'persistent')
DEFAULT_FINGERPRINT_BUCKET = 'daily'

# AppConfig document: default profile served by the local agent
DEFAULT_APPCONFIG_PROFILE_NAME = 'backend-config'
