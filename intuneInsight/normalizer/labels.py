"""
Setting label and category resolution.

Turns raw Graph property names, Settings Catalog definition IDs and OMA-URIs
into the human-readable keys and categories shown in the policy browser.

Every cascade is an ordered list of (predicate, result) rules where the first
matching rule wins. All functions are total: input they can't make sense of
resolves to a default label instead of raising.
"""

# Standard library imports
import re
from typing import Callable, List, Tuple

# Local imports
from ..models import CATEGORY_SEPARATOR


# Identifier prefixes of the Policy CSP naming convention used by the Settings Catalog
VENDOR_POLICY_PREFIXES = ('device_vendor_msft_policy_config_', 'user_vendor_msft_policy_config_')

# Parsed identifiers shorter than this fall back to plain title casing
MIN_PARSED_LENGTH = 5

DEFAULT_CATEGORY = "General"
DEFAULT_OMA_CATEGORY = "Device Configuration"

Rule = Tuple[Callable[[str], bool], str]


# Policy CSP areas, tried before ACTION_NAMES
COMPONENT_NAMES = {
    'admx': 'Administrative Template',
    'defender': 'Microsoft Defender',
    'windowsdefender': 'Microsoft Defender',
    'connectivity': 'Network Connectivity',
    'system': 'System',
    'browser': 'Browser',
    'internetexplorer': 'Internet Explorer',
    'microsoftedge': 'Microsoft Edge',
    'windowsupdate': 'Windows Update',
    'update': 'Windows Update',
    'applicationmanagement': 'Application Management',
    'devicemanagement': 'Device Management',
    'devicelock': 'Device Lock',
    'privacy': 'Privacy',
    'security': 'Security',
    'windowsai': 'Windows AI',
    'search': 'Search',
    'taskscheduler': 'Task Scheduler',
    'eventlog': 'Event Log',
    'wifi': 'Wi-Fi',
    'bluetooth': 'Bluetooth',
    'kerberos': 'Kerberos',
    'credentialsui': 'Credentials UI',
    'deliveryoptimization': 'Delivery Optimization',
    'experience': 'User Experience',
    'windowslogon': 'Windows Logon',
    'remotedesktop': 'Remote Desktop',
    'localsecurityauthority': 'Local Security Authority',
    'credentials': 'Credentials',
    'smartscreen': 'Smart Screen',
    'windowsfirewall': 'Windows Firewall',
    'troubleshooting': 'Troubleshooting',
    'diagnostics': 'Diagnostics',
    'errorreporting': 'Error Reporting',
    'msdt': 'Microsoft Support Diagnostic Tool',
    'icm': 'Information Collection',
    'nc': 'Network',
    'searchcompanion': 'Search Companion',
}

ACTION_NAMES = {
    'disable': 'Disable',
    'enable': 'Enable',
    'allow': 'Allow',
    'prevent': 'Prevent',
    'block': 'Block',
    'configure': 'Configure',
    'set': 'Set',
    'turn': 'Turn',
    'disallow': 'Disallow',
    'restrict': 'Restrict',
    'require': 'Require',
    'shellhousestoreopenwith': 'Shell House Store Open With',
    'exitonisp': 'Exit on ISP',
    'noregistration': 'No Registration',
    'disabledownloadingofprintdriversoverhttp': 'Disable Downloading of Print Drivers over HTTP',
    'diableprintingoverhttp': 'Disable Printing over HTTP',
    'disablefileupdates': 'Disable File Updates',
}


def _contains(*keywords: str) -> Callable[[str], bool]:
    return lambda text: any(keyword in text for keyword in keywords)


def _contains_both(first: Tuple[str, ...], second: Tuple[str, ...]) -> Callable[[str], bool]:
    return lambda text: _contains(*first)(text) and _contains(*second)(text)


def _path(*segments: str) -> str:
    return CATEGORY_SEPARATOR.join(segments)


# Device Configuration property names
FIELD_CATEGORY_RULES: List[Rule] = [
    (_contains('password', 'pin', 'auth'), "Authentication"),
    (_contains('camera', 'bluetooth', 'wifi', 'nfc'), "Hardware"),
    (_contains('storage', 'encryption'), "Storage & Encryption"),
    (_contains('screen', 'display'), "Display"),
    (_contains('power', 'battery'), "Power Management"),
    (_contains('microsoft', 'account'), "Microsoft Account"),
    (_contains('edge', 'web', 'internet'), "Web & Browser"),
    (_contains('settings', 'block'), "System Settings"),
    (_contains('location', 'sharing'), "Privacy"),
    (_contains('experience', 'logon'), "User Experience"),
    (_contains('cloud', 'print'), "Cloud & Printing"),
]

# Display names of OMA settings and leftover object properties
SETTING_KEY_CATEGORY_RULES: List[Rule] = [
    (_contains('delivery', 'optimization', 'download'), "Delivery Optimization"),
    (_contains('security', 'firewall', 'defender'), "Security"),
    (_contains('password', 'pin', 'auth'), "Authentication"),
    (_contains('device', 'hardware'), "Device Settings"),
    (_contains('app', 'application'), "Application Settings"),
    (_contains('network', 'wifi', 'vpn'), "Network"),
    (_contains('update', 'patch'), "Updates"),
    (_contains('compliance'), "Compliance"),
    (_contains('encryption', 'bitlocker'), "Encryption"),
    (_contains('scope', 'tag'), DEFAULT_CATEGORY),
    (_contains('peer', 'cache', 'ram', 'disk'), "Delivery Optimization"),
]

# Settings Catalog definition IDs, laid out like the Intune portal tree
SETTING_ID_CATEGORY_RULES: List[Rule] = [
    (_contains_both(('troubleshooting', 'diagnostics'), ('msdt',)),
     _path("System", "Troubleshooting and Diagnostics", "Microsoft Support Diagnostic Tool")),
    (_contains('troubleshooting', 'diagnostics'), _path("System", "Troubleshooting and Diagnostics")),
    (_contains('localeservices', 'locale'), _path("System", "Locale Services")),
    (_contains('kerberos'), _path("System", "Kerberos")),
    (_contains('internetcommunication', 'icm'), _path("System", "Internet Communication Management")),
    (_contains('errorreporting'), _path("System", "Error Reporting")),
    (_contains('eventlog'), _path("System", "Event Log")),
    (_contains('taskscheduler'), _path("System", "Task Scheduler")),
    (_contains('system'), "System"),

    (_contains_both(('connectivity',), ('print',)), _path("Network", "Connectivity", "Printing")),
    (_contains('connectivity'), _path("Network", "Connectivity")),
    (_contains('wifi', 'wireless'), _path("Network", "Wi-Fi")),
    (_contains('network'), "Network"),

    (_contains('defender', 'windowsdefender'), _path("Security", "Microsoft Defender")),
    (_contains('firewall'), _path("Security", "Windows Firewall")),
    (_contains('smartscreen'), _path("Security", "Smart Screen")),
    (_contains('credentials', 'authentication'), _path("Security", "Authentication")),
    (_contains('security'), "Security"),

    (_contains('browser', 'edge', 'internetexplorer'), _path("Applications", "Browser")),
    (_contains('search', 'searchcompanion'), _path("Applications", "Search")),
    (_contains('windowsai'), _path("Applications", "Windows AI")),
    (_contains('applicationmanagement', 'app'), "Applications"),

    (_contains('deliveryoptimization'), _path("User Experience", "Delivery Optimization")),
    (_contains('windowslogon', 'logon'), _path("User Experience", "Windows Logon")),
    (_contains('remotedesktop', 'remote'), _path("User Experience", "Remote Desktop")),
    (_contains('experience', 'user'), "User Experience"),

    (_contains('privacy', 'telemetry', 'data'), "Privacy"),

    (_contains('windowsupdate', 'update'), _path("Updates", "Windows Update")),

    (_contains('bluetooth'), _path("Device Settings", "Bluetooth")),
    (_contains('device', 'hardware'), "Device Settings"),

    (_contains('admx'), "Administrative Templates"),

    (_contains('password', 'pin', 'auth'), "Authentication"),
    (_contains('compliance'), "Compliance"),
    (_contains('encryption', 'bitlocker'), "Encryption"),
]

# Policy CSP areas addressed by OMA-URIs (./Device/... and ./User/...)
OMA_URI_AREAS = [
    ('windowsai', "Windows AI"),
    ('applicationcontrol', "Application Control"),
    ('security', "Security"),
    ('defender', "Windows Defender"),
    ('firewall', "Windows Firewall"),
    ('privacy', "Privacy"),
    ('update', "Windows Update"),
    ('devicelock', "Device Lock"),
    ('bitlocker', "BitLocker"),
    ('authentication', "Authentication"),
    ('browser', "Browser"),
    ('appruntime', "App Runtime"),
    ('camera', "Camera"),
    ('connectivity', "Connectivity"),
    ('deviceinstallation', "Device Installation"),
    ('experience', "User Experience"),
    ('system', "System"),
    ('admx', "ADMX Settings"),
    ('deliveryoptimization', "Delivery Optimization"),
]

OMA_URI_CATEGORY_RULES: List[Rule] = [
    (_contains(f"/vendor/msft/policy/config/{area}"), category)
    for area, category in OMA_URI_AREAS
]


def _resolve(text: str, rules: List[Rule], default: str) -> str:
    for predicate, result in rules:
        if predicate(text):
            return result
    return default


def _lower(value) -> str:
    return value.lower() if isinstance(value, str) else ''


def is_vendor_policy_id(value) -> bool:
    """Check whether a value follows the device_vendor_msft_policy_config_ naming."""
    lowered = _lower(value)
    return any(prefix in lowered for prefix in VENDOR_POLICY_PREFIXES)


def strip_vendor_prefix(value: str) -> str:
    """Remove the first Policy CSP prefix found in an identifier."""
    lowered = value.lower()
    for prefix in VENDOR_POLICY_PREFIXES:
        index = lowered.find(prefix)
        if index != -1:
            return value[:index] + value[index + len(prefix):]
    return value


def _split_camel_case(segment: str) -> str:
    spaced = re.sub(r'([a-z])([A-Z])', r'\1 \2', segment)
    spaced = re.sub(r'([A-Z])([A-Z][a-z])', r'\1 \2', spaced)
    return ' '.join(word[:1].upper() + word[1:].lower() for word in spaced.split())


def parse_settings_catalog_id(setting_id: str) -> str:
    """Build a readable name from a Settings Catalog definition ID.

    The Policy CSP prefix is removed and the remaining underscore-separated
    segments are mapped through COMPONENT_NAMES then ACTION_NAMES. Numeric and
    single-character segments are dropped; unknown segments are split on
    camelCase boundaries and capitalized.

    Example:
        device_vendor_msft_policy_config_defender_allowrealtimemonitoring
        -> "Microsoft Defender: Allowrealtimemonitoring"

    Parameters:
        setting_id (str): Settings Catalog setting definition ID

    Returns:
        str: Segments joined with ": ", or a title-cased version of the whole
             identifier when too little survives the mapping
    """
    suffix = strip_vendor_prefix(setting_id)

    parts = []
    for segment in suffix.split('_'):
        lowered = segment.lower()
        if not lowered or lowered.isdigit() or len(lowered) == 1:
            continue
        if lowered in COMPONENT_NAMES:
            parts.append(COMPONENT_NAMES[lowered])
        elif lowered in ACTION_NAMES:
            parts.append(ACTION_NAMES[lowered])
        else:
            parts.append(_split_camel_case(segment))

    result = ''
    if parts:
        result = ': '.join(parts)
        result = re.sub(r':\s*:', ':', result)
        result = re.sub(r'\s+', ' ', result).strip()
        result = re.sub(r':$', '', result)

    if len(result) < MIN_PARSED_LENGTH:
        result = re.sub(r'([a-z])([A-Z])', r'\1 \2', suffix.replace('_', ' '))
        result = re.sub(r'\b\w', lambda match: match.group(0).upper(), result).strip()

    return result


def format_key(key) -> str:
    """Format a property name or setting ID for display.

    Settings Catalog IDs go through parse_settings_catalog_id; anything else
    has snake_case and camelCase split into capitalized words
    ("passwordMinimumLength" -> "Password Minimum Length").
    """
    if not isinstance(key, str):
        return '' if key is None else str(key)

    if is_vendor_policy_id(key):
        return parse_settings_catalog_id(key)

    text = key.replace('_', ' ')
    text = re.sub(r'([A-Z])', r' \1', text)
    text = re.sub(r'\s+', ' ', text).strip()
    return text[:1].upper() + text[1:]


def categorize_field(name) -> str:
    """Category of a Device Configuration property name."""
    return _resolve(_lower(name), FIELD_CATEGORY_RULES, DEFAULT_CATEGORY)


def categorize_setting_key(name) -> str:
    """Category of a setting display name or generic property name."""
    return _resolve(_lower(name), SETTING_KEY_CATEGORY_RULES, DEFAULT_CATEGORY)


def categorize_setting_id(setting_id) -> str:
    """Hierarchical category of a Settings Catalog definition ID.

    Matching ignores the Policy CSP prefix, otherwise every ID would hit the
    'device' rule through 'device_vendor_...'.
    """
    if not isinstance(setting_id, str):
        return DEFAULT_CATEGORY
    return _resolve(strip_vendor_prefix(setting_id).lower(), SETTING_ID_CATEGORY_RULES, DEFAULT_CATEGORY)


def categorize_oma_uri(oma_uri) -> str:
    """Category of a custom profile OMA-URI such as ./Device/Vendor/MSFT/Policy/Config/Defender/..."""
    return _resolve(_lower(oma_uri), OMA_URI_CATEGORY_RULES, DEFAULT_OMA_CATEGORY)
