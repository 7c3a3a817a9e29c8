# Log event codes emitted by the scan pipeline (`extra={'event': ...}`)

# Fingerprint
FINGERPRINT_RANDOM_FALLBACK = 'FINGERPRINT_RANDOM_FALLBACK'

# Device classification
DEVICE_PARSE_FAILED = 'DEVICE_PARSE_FAILED'

# Geolocation
GEO_LOCAL_FALLBACK = 'GEO_LOCAL_FALLBACK'
GEO_INVALID_IP = 'GEO_INVALID_IP'
GEO_PRIMARY_FAILED = 'GEO_PRIMARY_FAILED'
GEO_BACKUP_FAILED = 'GEO_BACKUP_FAILED'
GEO_UNKNOWN_FALLBACK = 'GEO_UNKNOWN_FALLBACK'
GEO_BATCH_FAILED = 'GEO_BATCH_FAILED'

# Rate limiting
RATE_LIMIT_EXCEEDED = 'RATE_LIMIT_EXCEEDED'
RATE_LIMIT_FAIL_OPEN = 'RATE_LIMIT_FAIL_OPEN'

# Code resolution
CODE_NOT_FOUND = 'CODE_NOT_FOUND'
CODE_INACTIVE = 'CODE_INACTIVE'
CODE_DELETED = 'CODE_DELETED'
CODE_MALFORMED = 'CODE_MALFORMED'

# Recording
UNIQUENESS_CHECK_FAILED = 'UNIQUENESS_CHECK_FAILED'
SCAN_RECORDED = 'SCAN_RECORDED'
PERSISTENCE_FAILURE = 'PERSISTENCE_FAILURE'

# Counters
COUNTER_UPDATE_FAILED = 'COUNTER_UPDATE_FAILED'
COUNTERS_RECONCILED = 'COUNTERS_RECONCILED'
COUNTERS_RECONCILE_SKIPPED = 'COUNTERS_RECONCILE_SKIPPED'

# Orchestration
SCAN_REJECTED = 'SCAN_REJECTED'
SCAN_REDIRECTED = 'SCAN_REDIRECTED'
