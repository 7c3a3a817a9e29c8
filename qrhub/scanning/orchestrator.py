"""Scan pipeline orchestration

One scan walks through these states:

    RECEIVED -> CODE_RESOLVED -> RATE_CHECKED -> RECORDED -> COUNTERS_UPDATED -> REDIRECTED

Resolution, rate limiting and recording may end the pipeline in REJECTED instead.

Rejections end the pipeline with a ScanRejectedError subclass on the outcome:
    - QRCodeUnavailableError:   missing, malformed, unknown, inactive or deleted short code
    - RateLimitExceededError:   too many scans of the code from the same IP
    - PersistenceFailureError:  the store failed while resolving or recording

Counter updates are best effort and never change the outcome.

Example:
    >>> orchestrator = ScanOrchestrator(resolver, rate_limiter, recorder, counters)
    >>> outcome = orchestrator.process(ScanRequest(short_code='abc12345', ip='203.0.113.7', user_agent='...'))
    >>> outcome.state
    <ScanState.REDIRECTED: 'redirected'>
    >>> outcome.target_url
    'https://example.com/menu'
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import StrEnum
from typing import Optional

from qrhub.types import UTMParams
from qrhub.models import QRCodeModel
from qrhub.dao.exceptions import DAOError
from qrhub.exceptions import ScanRejectedError, QRCodeUnavailableError, RateLimitExceededError, PersistenceFailureError
from qrhub.utils.helpers import mask_ip
from qrhub.scanning.resolver import CodeResolver
from qrhub.scanning.rate_limiter import RateLimiter
from qrhub.scanning.recorder import ScanRecorder, RecordedScan
from qrhub.scanning.counters import CounterUpdater
from qrhub.scanning.constants import SCAN_REJECTED, SCAN_REDIRECTED, PERSISTENCE_FAILURE


logger = logging.getLogger(__name__)


class ScanState(StrEnum):
    RECEIVED = 'received'
    CODE_RESOLVED = 'code_resolved'
    RATE_CHECKED = 'rate_checked'
    RECORDED = 'recorded'
    COUNTERS_UPDATED = 'counters_updated'
    REDIRECTED = 'redirected'
    REJECTED = 'rejected'


@dataclass(frozen=True)
class ScanRequest:
    """Everything the pipeline needs to know about one inbound scan"""

    short_code: Optional[str]
    ip: str
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    utm: UTMParams = field(default_factory=dict)
    received_at: Optional[datetime] = None


@dataclass
class ScanOutcome:
    state: ScanState = ScanState.RECEIVED
    history: list[ScanState] = field(default_factory=lambda: [ScanState.RECEIVED])
    qr_code: Optional[QRCodeModel] = None
    scan: Optional[RecordedScan] = None
    target_url: Optional[str] = None
    rejection: Optional[ScanRejectedError] = None

    def advance(self, state: ScanState) -> None:
        self.state = state
        self.history.append(state)

    @property
    def is_redirect(self) -> bool:
        return self.state == ScanState.REDIRECTED


class ScanOrchestrator:
    """Drive one scan through resolution, rate limiting, recording and counting"""

    def __init__(
        self,
        resolver: CodeResolver,
        rate_limiter: RateLimiter,
        recorder: ScanRecorder,
        counters: CounterUpdater,
        logger: logging.Logger = logger,
    ):
        self.resolver = resolver
        self.rate_limiter = rate_limiter
        self.recorder = recorder
        self.counters = counters
        self.logger = logger

    def process(self, request: ScanRequest) -> ScanOutcome:
        """Run the scan pipeline. Never raises for expected failures; see ScanOutcome.rejection."""
        outcome = ScanOutcome()
        now = request.received_at or datetime.now(UTC)

        # 1- Resolve short code to an active QR code
        try:
            qr_code = self.resolver.find_active(request.short_code)
        except QRCodeUnavailableError as e:
            return self._reject(outcome, e, request)
        except DAOError as e:
            return self._persistence_failure(outcome, e, request, step='resolve')
        outcome.qr_code = qr_code
        outcome.advance(ScanState.CODE_RESOLVED)

        # 2- Gate on per IP rate limit
        if not self.rate_limiter.is_allowed(request.ip, qr_code.id, now=now):
            error = RateLimitExceededError(
                f"Rate limit exceeded for QR code '{qr_code.id}'.",
                retry_after=self.rate_limiter.window_seconds,
            )
            return self._reject(outcome, error, request)
        outcome.advance(ScanState.RATE_CHECKED)

        # 3- Derive signals and persist the scan event
        try:
            scan = self.recorder.record(
                qr_code,
                ip=request.ip,
                user_agent=request.user_agent,
                referrer=request.referrer,
                utm=request.utm,
                now=now,
            )
        except DAOError as e:
            return self._persistence_failure(outcome, e, request, step='record')
        outcome.scan = scan
        outcome.advance(ScanState.RECORDED)

        # 4- Update cached counters (best effort)
        self.counters.apply_scan(qr_code, scan.is_unique, scanned_at=scan.event.scanned_at)
        outcome.advance(ScanState.COUNTERS_UPDATED)

        # 5- Redirect
        outcome.target_url = qr_code.target_url
        outcome.advance(ScanState.REDIRECTED)
        self.logger.info(
            'Scan accepted. Redirecting to target URL.',
            extra={'event': SCAN_REDIRECTED, 'qrCodeId': qr_code.id, 'scanId': scan.event.id, 'isUnique': scan.is_unique},
        )
        return outcome

    def _persistence_failure(self, outcome: ScanOutcome, error: DAOError, request: ScanRequest, step: str) -> ScanOutcome:
        self.logger.error(
            'Scan store failure. Rejecting scan.',
            exc_info=error,
            extra={'event': PERSISTENCE_FAILURE, 'step': step, 'shortCode': request.short_code, 'ip': mask_ip(request.ip)},
        )
        rejection = PersistenceFailureError(f'Scan store failure during {step} ({error.__class__.__name__}).')
        rejection.__cause__ = error
        return self._reject(outcome, rejection, request)

    def _reject(self, outcome: ScanOutcome, error: ScanRejectedError, request: ScanRequest) -> ScanOutcome:
        outcome.rejection = error
        outcome.advance(ScanState.REJECTED)
        self.logger.info(
            'Scan rejected.',
            extra={
                'event': SCAN_REJECTED,
                'errorCode': error.error_code,
                'shortCode': request.short_code,
                'ip': mask_ip(request.ip),
                'history': [state.value for state in outcome.history],
            },
        )
        return outcome
