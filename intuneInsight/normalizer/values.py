"""
Setting value translation, platform inference and timestamp formatting
"""

# Standard library imports
import json
import re
from datetime import datetime
from typing import Optional

# Local imports
from ..models import Platform
from .labels import VENDOR_POLICY_PREFIXES


UNKNOWN_DATE = "Unknown"

# Encoded values with a known meaning (looked up lower-cased)
VALUE_TRANSLATIONS = {
    # Boolean values
    '0': 'Disabled',
    '1': 'Enabled',
    'true': 'Enabled',
    'false': 'Disabled',

    # Settings Catalog choice values
    'device_vendor_msft_policy_config_admx_icm_shellhousestoreopenwith_2_1': 'Enabled',
    'device_vendor_msft_policy_config_admx_icm_nc_exitonisp_1': 'Enabled',
    'device_vendor_msft_policy_config_admx_icm_nc_noregistration_1': 'Enabled',
    'device_vendor_msft_policy_config_connectivity_disabledownloadingofprintdriversoverhttp_1': 'Enabled',
    'device_vendor_msft_policy_config_connectivity_diableprintingoverhttp_1': 'Enabled',
    'device_vendor_msft_policy_config_admx_icm_searchcompanion_disablefileupdates_1': 'Enabled',

    # Enumerations shared by many settings
    'automatic': 'Automatic',
    'enabled': 'Enabled',
    'disabled': 'Disabled',
    'notconfigured': 'Not Configured',
    'devicedefault': 'Device Default',
    'userdefined': 'User Defined',

    # Generic fallback for every setting; mislabels non-binary enumerations that use 2/3
    '2': 'Enabled',
    '3': 'Disabled',
}

# Setting names that mark a 0/1 value as an on/off switch
TOGGLE_HINTS = ('turn', 'enable', 'disable')
TOGGLE_VALUES = {'0': 'Disabled', '1': 'Enabled'}

# Ordered (token, platform) pairs; the first token found wins
TYPE_PLATFORM_TOKENS = [
    (('windows', 'win32'), Platform.WINDOWS),
    (('ios', 'iphone'), Platform.IOS),
    (('android',), Platform.ANDROID),
    (('macos', 'mac'), Platform.MACOS),
]

PLATFORMS_FIELD_TOKENS = [
    (('windows',), Platform.WINDOWS),
    (('ios',), Platform.IOS),
    (('android',), Platform.ANDROID),
    (('macos',), Platform.MACOS),
]

_FRACTION_PATTERN = re.compile(r'\.(\d+)')


def display_string(value) -> str:
    """Render a JSON value the way the policy browser shows it.

    Booleans become 'true'/'false', integral floats lose their '.0' and lists
    are joined with commas. Objects are rendered as indented JSON.
    """
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ','.join(display_string(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, indent=2, ensure_ascii=False)
    return str(value)


def format_structured(value) -> str:
    """Render a property value, spreading objects and arrays over several lines."""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, indent=2, ensure_ascii=False, default=str)
    return display_string(value)


def translate_value(value, setting_name: str = '') -> str:
    """Translate a technical setting value into a user-friendly one.

    Resolution order:
        1. VALUE_TRANSLATIONS direct lookup
        2. 0/1 when the setting name reads like a switch
        3. Policy CSP encoded values: a _0/_1 suffix or 'disable'/'enable'
           decide, otherwise 'Configured' (the meaning can't be inferred)
        4. The value itself with its first letter capitalized

    Parameters:
        value: Raw value (usually a string)
        setting_name (str): Setting name used as a hint for 0/1 values

    Returns:
        str: Translated value, empty string for empty input
    """
    text = value if isinstance(value, str) else display_string(value)
    if not text:
        return text

    lowered = text.lower()
    hint = setting_name.lower() if isinstance(setting_name, str) else ''

    if lowered in VALUE_TRANSLATIONS:
        return VALUE_TRANSLATIONS[lowered]

    if any(word in hint for word in TOGGLE_HINTS) and lowered in TOGGLE_VALUES:
        return TOGGLE_VALUES[lowered]

    if lowered.startswith(VENDOR_POLICY_PREFIXES):
        if lowered.endswith('_0'):
            return 'Disabled'
        if lowered.endswith('_1'):
            return 'Enabled'
        if 'disable' in lowered:
            return 'Disabled'
        if 'enable' in lowered:
            return 'Enabled'
        return 'Configured'

    return text[0].upper() + text[1:]


def _match_platform(text, tokens) -> Platform:
    lowered = text.lower() if isinstance(text, str) else ''
    for keywords, platform in tokens:
        if any(keyword in lowered for keyword in keywords):
            return platform
    return Platform.ALL


def determine_platform(type_hint) -> Platform:
    """Infer the platform from an OData type such as '#microsoft.graph.iosCompliancePolicy'."""
    return _match_platform(type_hint, TYPE_PLATFORM_TOKENS)


def map_platform_from_string(platforms) -> Platform:
    """Map the 'platforms' field of a Settings Catalog policy (e.g. 'windows10')."""
    return _match_platform(platforms, PLATFORMS_FIELD_TOKENS)


def parse_timestamp(value) -> Optional[datetime]:
    """Parse a Graph ISO-8601 timestamp, or return None.

    Graph returns up to 7 fractional digits and a 'Z' suffix, neither of which
    every datetime.fromisoformat accepts, so both are normalized first.
    """
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text[-1] in 'Zz':
        text = text[:-1] + '+00:00'
    text = _FRACTION_PATTERN.sub(lambda match: '.' + match.group(1)[:6].ljust(6, '0'), text, count=1)

    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def format_timestamp(value) -> str:
    """Short M/D/YYYY date of a timestamp, or 'Unknown'."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return UNKNOWN_DATE
    return f"{parsed.month}/{parsed.day}/{parsed.year}"
