# Diagnostic statuses (also used as log event codes)
SUCCESS = 'success'
PARTIAL = 'partial'
ERROR = 'error'
