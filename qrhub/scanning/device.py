"""Device classification from the User-Agent header

Mapping:
    - mobile or tablet form factor: iOS -> iOS, Android -> Android, anything else -> Other
    - smart TVs, consoles and wearables -> Other
    - everything else (desktop, or no explicit form factor): iOS/Android OS -> by OS
      (desktop-mode mobile browsers), otherwise Desktop
    - empty, unparseable or unrecognisable user agent (no known OS and no PC
      form factor) -> Other
"""

import re
import logging

import user_agents

from qrhub.models import DeviceInfo, DeviceType, UNKNOWN
from qrhub.scanning.constants import DEVICE_PARSE_FAILED


logger = logging.getLogger(__name__)

NON_DESKTOP_RE = re.compile(r'smart-?tv|hbbtv|googletv|appletv|roku|playstation|xbox|nintendo|watch|wearable', re.IGNORECASE)

_OS_DEVICE_TYPES = {
    'ios': DeviceType.IOS,
    'android': DeviceType.ANDROID,
}


def _family(value: str | None) -> str:
    return UNKNOWN if not value or value == 'Other' else value


def classify_device(user_agent: str | None, logger: logging.Logger = logger) -> DeviceInfo:
    """Classify a raw User-Agent string into a DeviceInfo. Never raises.

    Example:
        >>> classify_device('Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) ...').device
        <DeviceType.IOS: 'iOS'>
        >>> classify_device('').device
        <DeviceType.OTHER: 'Other'>
    """
    if not user_agent or not user_agent.strip():
        return DeviceInfo()

    try:
        parsed = user_agents.parse(user_agent)
        os_family = _family(parsed.os.family)
        os_device = _OS_DEVICE_TYPES.get(os_family.lower())

        if parsed.is_mobile or parsed.is_tablet:
            device = os_device or DeviceType.OTHER
        elif NON_DESKTOP_RE.search(user_agent):
            device = DeviceType.OTHER
        elif os_device:
            device = os_device
        elif os_family == UNKNOWN and not parsed.is_pc:
            # Parsed, but nothing recognisable (garbage, bots, HTTP libraries)
            device = DeviceType.OTHER
        else:
            device = DeviceType.DESKTOP

        os_name = UNKNOWN if os_family == UNKNOWN else f'{os_family} {parsed.os.version_string}'.strip()
        browser = _family(parsed.browser.family)
    except Exception:
        logger.warning('Failed to parse user agent. Classifying device as Other.', exc_info=True, extra={'event': DEVICE_PARSE_FAILED})
        return DeviceInfo(user_agent=user_agent)

    return DeviceInfo(device=device, browser=browser, os=os_name, user_agent=user_agent)
