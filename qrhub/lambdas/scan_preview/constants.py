# Log event codes of the scan_preview lambda
MALFORMED_SHORT_CODE = 'MALFORMED_SHORT_CODE'
DATA_STORE_UNAVAILABLE = 'DATA_STORE_UNAVAILABLE'
SCAN_NOT_PREVIEWED = 'SCAN_NOT_PREVIEWED'
PREVIEW_SUCCESS = 'PREVIEW_SUCCESS'

PREVIEW_SUCCESS_MESSAGE = 'QR code scanned successfully'
