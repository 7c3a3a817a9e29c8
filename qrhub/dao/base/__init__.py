from qrhub.dao.base.qrcode_base_dao import QRCodeBaseDAO
from qrhub.dao.base.scan_event_base_dao import ScanEventBaseDAO


__all__ = [
    'QRCodeBaseDAO',
    'ScanEventBaseDAO',
]
