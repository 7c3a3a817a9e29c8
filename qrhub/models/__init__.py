from qrhub.models.qrcode_model import QRCodeModel, QRStatus, is_valid_short_code
from qrhub.models.scan_event_model import ScanEventModel, GeoLocation, DeviceInfo, DeviceType, UNKNOWN


__all__ = [
    'QRCodeModel',
    'QRStatus',
    'is_valid_short_code',
    'ScanEventModel',
    'GeoLocation',
    'DeviceInfo',
    'DeviceType',
    'UNKNOWN',
]
