# Log event codes of the scan_redirect lambda
MALFORMED_SHORT_CODE = 'MALFORMED_SHORT_CODE'
DATA_STORE_UNAVAILABLE = 'DATA_STORE_UNAVAILABLE'
SCAN_NOT_REDIRECTED = 'SCAN_NOT_REDIRECTED'
REDIRECT_SUCCESS = 'REDIRECT_SUCCESS'
