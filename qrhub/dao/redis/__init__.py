from qrhub.dao.redis.redis_key_schema import RedisKeySchema
from qrhub.dao.redis.mixins import RedisClientMixin
from qrhub.dao.redis.qrcode_redis_dao import QRCodeRedisDAO
from qrhub.dao.redis.scan_event_redis_dao import ScanEventRedisDAO


__all__ = [
    'RedisKeySchema',
    'RedisClientMixin',
    'QRCodeRedisDAO',
    'ScanEventRedisDAO',
]
