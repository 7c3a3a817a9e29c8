from qrhub.scanning.fingerprint import derive_fingerprint, is_valid_fingerprint, short_fingerprint, FingerprintBucket
from qrhub.scanning.device import classify_device
from qrhub.scanning.geolocation import GeolocationResolver, UNKNOWN_LOCATION, LOCAL_LOCATION
from qrhub.scanning.rate_limiter import RateLimiter
from qrhub.scanning.resolver import CodeResolver
from qrhub.scanning.recorder import ScanRecorder, RecordedScan
from qrhub.scanning.counters import CounterUpdater
from qrhub.scanning.orchestrator import ScanOrchestrator, ScanRequest, ScanOutcome, ScanState
from qrhub.scanning.stats import compute_scan_stats, ScanStats
from qrhub.scanning.reconcile import reconcile_counters, ReconcileResult


__all__ = [
    'derive_fingerprint',
    'is_valid_fingerprint',
    'short_fingerprint',
    'FingerprintBucket',
    'classify_device',
    'GeolocationResolver',
    'UNKNOWN_LOCATION',
    'LOCAL_LOCATION',
    'RateLimiter',
    'CodeResolver',
    'ScanRecorder',
    'RecordedScan',
    'CounterUpdater',
    'ScanOrchestrator',
    'ScanRequest',
    'ScanOutcome',
    'ScanState',
    'compute_scan_stats',
    'ScanStats',
    'reconcile_counters',
    'ReconcileResult',
]
