"""
Policy normalization - converts raw Intune Graph objects into unified policy records.

Device configurations, compliance policies, app protection policies and
Settings Catalog policies all come back from Graph with different shapes and
field names. This module applies per-family extraction rules and decodes the
settings into SettingEntry objects so every policy can be searched and
displayed the same way.

Normalization is a pure function of the raw object: it never mutates its
input, never raises on missing or malformed optional fields, and returns the
same record for the same input.
"""

# Standard library imports
from typing import Callable, Dict, List, Optional, Tuple

# Local imports
from ..models import PolicyFamily, Platform, SettingEntry, UnifiedPolicyRecord
from .labels import (
    categorize_field,
    categorize_oma_uri,
    categorize_setting_id,
    categorize_setting_key,
    format_key,
)
from .values import (
    determine_platform,
    display_string,
    format_structured,
    format_timestamp,
    map_platform_from_string,
    translate_value,
)


UNKNOWN = "Unknown"
UNKNOWN_VALUE = "[Unknown]"
NO_VALUE = "[No Value]"
ENCRYPTED_VALUE = "[Encrypted]"
ENCRYPTED_REFERENCE_VALUE = "[Encrypted Value]"

COMPLIANCE_CATEGORY = "Compliance Requirements"
APP_PROTECTION_CATEGORY = "App Protection"

# Top-level policy properties that describe the policy itself rather than a setting
RECORD_FIELDS = {
    'id', 'displayName', 'description', 'createdDateTime', 'lastModifiedDateTime',
    'version', '@odata.type', '@odata.context', 'createdBy', 'assignments',
    'roleScopeTagIds', 'supportsScopeTags',
}

# Properties skipped when falling back to field-by-field decoding of a setting object
SETTING_SYSTEM_FIELDS = {
    '@odata.type', '@odata.context', 'id', 'createdDateTime', 'lastModifiedDateTime', 'settingInstance',
}

SCOPE_TAG_MARKERS = ('rolescopetagids', 'supportsscopetags')

# Device Configuration properties known to be settings
DEVICE_CONFIGURATION_FIELDS = [
    'passwordRequired', 'passwordMinimumLength', 'passwordRequiredType',
    'passwordMinutesOfInactivityBeforeLock', 'passwordExpirationDays',
    'passwordPreviousPasswordBlockCount', 'passwordSignInFailureCountBeforeFactoryReset',
    'storageRequireEncryption', 'storageBlockRemovableStorage',
    'cameraBlocked', 'bluetoothBlocked', 'wifiBlocked', 'voiceRoamingBlocked',
    'dataRoamingBlocked', 'messagesBlocked', 'wirelessDisplayBlocked',
    'screenCaptureBlocked', 'deviceSharingAllowed', 'factoryResetBlocked',
    'usbBlocked', 'antiTheftModeBlocked', 'windowsSpotlightBlocked',
    'edgeBlocked', 'edgeBlockAccessToAboutFlags', 'smartScreenEnabled',
    'smartScreenBlockPromptOverride', 'smartScreenBlockPromptOverrideForFiles',
    'webRtcBlockLocalhostIpAddress', 'internetSharingBlocked',
    'settingsBlockAddProvisioningPackage', 'settingsBlockRemoveProvisioningPackage',
    'settingsBlockChangeSystemTime', 'settingsBlockEditDeviceName',
    'settingsBlockChangeRegion', 'settingsBlockChangeLanguage',
    'settingsBlockChangePowerSleep', 'locationServicesBlocked',
    'microsoftAccountBlocked', 'microsoftAccountBlockSettingsSync',
    'nfcBlocked', 'resetProtectionModeBlocked', 'powerButtonActionOnBattery',
    'powerButtonActionPluggedIn', 'powerLidCloseActionOnBattery',
    'powerLidCloseActionPluggedIn', 'powerHybridSleepOnBattery',
    'powerHybridSleepPluggedIn', 'windows10AppsForceUpdateSchedule',
    'enableAutomaticRedeployment', 'microsoftAccountSignInAssistantSettings',
    'authenticationAllowSecondaryDevice', 'authenticationWebSignIn',
    'authenticationPreferredAzureADTenantDomainName', 'cryptographyAllowFipsAlgorithmPolicy',
    'displayAppListWithGdiDPIScalingTurnedOn', 'displayAppListWithGdiDPIScalingTurnedOff',
    'enterpriseCloudPrintDiscoveryEndPoint', 'enterpriseCloudPrintOAuthAuthority',
    'enterpriseCloudPrintOAuthClientIdentifier', 'enterpriseCloudPrintResourceIdentifier',
    'enterpriseCloudPrintDiscoveryMaxLimit', 'enterpriseCloudPrintMopriaDiscoveryResourceIdentifier',
    'experienceBlockDeviceDiscovery', 'experienceBlockErrorDialogWhenNoSIM',
    'experienceBlockTaskSwitcher', 'logonBlockFastUserSwitching',
]
_DEVICE_CONFIGURATION_FIELD_SET = set(DEVICE_CONFIGURATION_FIELDS)

# Nested Device Configuration objects expanded field by field: property -> category
NESTED_SETTING_OBJECTS = {
    'deviceSettings': "Device Settings",
    'userSettings': "User Settings",
}

# (display key, raw property) pairs
COMPLIANCE_FIELDS = [
    ("Password Required", 'passwordRequired'),
    ("Password Minimum Length", 'passwordMinimumLength'),
    ("Password Type", 'passwordRequiredType'),
    ("Inactivity Lock (minutes)", 'passwordMinutesOfInactivityBeforeLock'),
    ("Storage Encryption Required", 'storageRequireEncryption'),
    ("Minimum OS Version", 'osMinimumVersion'),
    ("Maximum OS Version", 'osMaximumVersion'),
    ("Threat Protection Enabled", 'deviceThreatProtectionEnabled'),
    ("Security Level", 'deviceThreatProtectionRequiredSecurityLevel'),
    ("Antimalware Required", 'securityRequireUpToDateAntiMalware'),
]

APP_PROTECTION_FIELDS = [
    ("Offline Access Check", 'periodOfflineBeforeAccessCheck'),
    ("Online Access Check", 'periodOnlineBeforeAccessCheck'),
    ("Inbound Data Transfer", 'allowedInboundDataTransferSources'),
    ("Outbound Data Transfer", 'allowedOutboundDataTransferDestinations'),
    ("Organizational Credentials Required", 'organizationalCredentialsRequired'),
    ("Clipboard Sharing", 'allowedOutboundClipboardSharingLevel'),
    ("Data Backup Blocked", 'dataBackupBlocked'),
    ("Device Compliance Required", 'deviceComplianceRequired'),
    ("Managed Browser Required", 'managedBrowserToOpenLinksRequired'),
    ("Save As Blocked", 'saveAsBlocked'),
    ("PIN Required", 'pinRequired'),
    ("Maximum PIN Retries", 'maximumPinRetries'),
    ("Simple PIN Blocked", 'simplePinBlocked'),
    ("Minimum PIN Length", 'minimumPinLength'),
    ("Contact Sync Blocked", 'contactSyncBlocked'),
    ("Print Blocked", 'printBlocked'),
    ("Fingerprint Blocked", 'fingerprintBlocked'),
]

# Auxiliary sources folded into the Configuration Policy family:
# kind -> (settings category, name placeholder, fixed platform or None to infer)
AUXILIARY_KINDS: Dict[str, Tuple[str, str, Optional[Platform]]] = {
    'group_policy': ("Group Policy", "Group Policy Configuration", Platform.WINDOWS),
    'security_baseline': ("Security Baseline", "Security Baseline", None),
    'enrollment_configuration': ("Enrollment Configuration", "Enrollment Configuration", None),
}


# ============================================================================
# Field helpers
# ============================================================================

def _text(value) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return display_string(value)
    return ''


def _nested(obj, *keys):
    for key in keys:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _is_bookkeeping(key: str) -> bool:
    lowered = key.lower()
    return '@odata' in lowered or any(marker in lowered for marker in SCOPE_TAG_MARKERS)


def _assigned_groups(raw: Dict) -> Tuple[str, ...]:
    assignments = raw.get('assignments')
    if not isinstance(assignments, list):
        return ()
    groups = []
    for assignment in assignments:
        group_id = _nested(assignment, 'target', 'groupId')
        groups.append(group_id if isinstance(group_id, str) and group_id else UNKNOWN)
    return tuple(groups)


def _build_record(raw: Dict, family: PolicyFamily, platform: Platform,
                  settings: List[SettingEntry], name_label: str) -> UnifiedPolicyRecord:
    record_id = _text(raw.get('id')) or 'unknown'
    return UnifiedPolicyRecord(
        id=record_id,
        name=_text(raw.get('displayName')) or _text(raw.get('name')) or f"{name_label} {record_id}",
        description=_text(raw.get('description')),
        family=family,
        platform=platform,
        last_modified=format_timestamp(raw.get('lastModifiedDateTime')),
        created_by=_text(_nested(raw, 'createdBy', 'user', 'displayName')) or UNKNOWN,
        assigned_groups=_assigned_groups(raw),
        settings=tuple(settings),
    )


def _named_fields(raw: Dict, fields: List[Tuple[str, str]], category: str) -> List[SettingEntry]:
    settings = []
    for label, prop in fields:
        value = raw.get(prop)
        if value is not None:
            settings.append(SettingEntry(category, label, display_string(value)))
    return settings


# ============================================================================
# Setting object decoding
# ============================================================================

def _is_decodable(item) -> bool:
    if not isinstance(item, dict):
        return False
    if item.get('displayName') and 'value' in item:
        return True
    return bool(_nested(item, 'settingInstance', 'settingDefinitionId'))


def _looks_like_settings_array(key: str, value) -> bool:
    lowered = key.lower()
    return isinstance(value, list) and ('oma' in lowered or 'settings' in lowered)


def _expand_settings_array(items: List) -> Optional[List[SettingEntry]]:
    """Decode the elements of an OMA-style settings array one by one.

    Returns:
        Optional[List[SettingEntry]]: Decoded entries (empty for an empty
            array), or None when no element has a setting shape and the array
            should be shown as a plain value instead
    """
    if not items:
        return []
    decodable = [item for item in items if _is_decodable(item)]
    if not decodable:
        return None
    entries = []
    for item in decodable:
        entries.extend(decode_setting(item))
    return entries


def _decode_display_value(setting: Dict) -> SettingEntry:
    display_name = _text(setting.get('displayName'))
    raw_value = setting.get('value')

    if raw_value is not None:
        value = display_string(raw_value)
    elif setting.get('secretReferenceValueId'):
        value = ENCRYPTED_REFERENCE_VALUE
    elif setting.get('isEncrypted'):
        value = ENCRYPTED_VALUE
    else:
        value = NO_VALUE

    oma_uri = setting.get('omaUri')
    if isinstance(oma_uri, str) and oma_uri:
        category = categorize_oma_uri(oma_uri)
    else:
        category = categorize_setting_key(display_name)

    return SettingEntry(
        category=category,
        key=display_name,
        value=translate_value(value, display_name),
        description=_text(setting.get('description')),
    )


def _instance_value(instance: Dict) -> str:
    choice_value = _nested(instance, 'choiceSettingValue', 'value')
    if choice_value:
        return display_string(choice_value)

    simple_value = _nested(instance, 'simpleSettingValue', 'value')
    if simple_value is not None:
        return display_string(simple_value)

    for collection_key in ('simpleSettingCollectionValue', 'choiceSettingCollectionValue'):
        collection = instance.get(collection_key)
        if isinstance(collection, list):
            values = [display_string(item.get('value')) for item in collection
                      if isinstance(item, dict) and item.get('value') is not None]
            if values:
                return ', '.join(values)

    return UNKNOWN_VALUE


def _child_instances(instance: Dict) -> List:
    children = []

    choice_children = _nested(instance, 'choiceSettingValue', 'children')
    if isinstance(choice_children, list):
        children.extend(choice_children)

    group_value_children = _nested(instance, 'groupSettingValue', 'children')
    if isinstance(group_value_children, list):
        children.extend(group_value_children)

    group_collection = instance.get('groupSettingCollectionValue')
    if isinstance(group_collection, list):
        for group in group_collection:
            group_children = _nested(group, 'children')
            if isinstance(group_children, list):
                children.extend(group_children)

    return children


def _decode_setting_instance(instance: Dict) -> List[SettingEntry]:
    """Decode a Settings Catalog setting instance and its child instances."""
    setting_id = _text(instance.get('settingDefinitionId'))
    key = format_key(setting_id)

    entries = [SettingEntry(
        category=categorize_setting_id(setting_id),
        key=key,
        value=translate_value(_instance_value(instance), key),
    )]

    for child in _child_instances(instance):
        if isinstance(child, dict) and child.get('settingDefinitionId'):
            entries.extend(_decode_setting_instance(child))

    return entries


def _decode_remaining_fields(setting: Dict) -> List[SettingEntry]:
    entries = []
    for key, value in setting.items():
        if value is None or key in SETTING_SYSTEM_FIELDS or _is_bookkeeping(key):
            continue

        if _looks_like_settings_array(key, value):
            expanded = _expand_settings_array(value)
            if expanded is not None:
                entries.extend(expanded)
                continue

        entries.append(SettingEntry(categorize_setting_key(key), format_key(key), format_structured(value)))
    return entries


def decode_setting(setting) -> List[SettingEntry]:
    """Decode one raw setting object into setting entries.

    The shapes are tried in order and only the first match is used:
        1. {displayName, value, omaUri?, description?} (custom OMA settings)
        2. A list of setting objects, decoded element by element
        3. {settingInstance: {settingDefinitionId, ...}} (Settings Catalog)
        4. Any other object, decoded property by property

    Parameters:
        setting: Raw setting object from Graph

    Returns:
        List[SettingEntry]: Decoded entries; empty for values that aren't
            objects or lists
    """
    if isinstance(setting, dict) and setting.get('displayName') and 'value' in setting:
        return [_decode_display_value(setting)]

    if isinstance(setting, (list, tuple)):
        entries = []
        for item in setting:
            entries.extend(decode_setting(item))
        return entries

    if not isinstance(setting, dict):
        return []

    instance = setting.get('settingInstance')
    if isinstance(instance, dict) and instance.get('settingDefinitionId'):
        return _decode_setting_instance(instance)

    return _decode_remaining_fields(setting)


# ============================================================================
# Per-family rules
# ============================================================================

def _nested_object_fields(obj: Dict, category: str) -> List[SettingEntry]:
    return [
        SettingEntry(category, format_key(key), display_string(value))
        for key, value in obj.items()
        if value is not None and not _is_bookkeeping(key)
    ]


def _normalize_device_configuration(raw: Dict) -> UnifiedPolicyRecord:
    settings = []

    for prop in DEVICE_CONFIGURATION_FIELDS:
        value = raw.get(prop)
        if value is not None:
            settings.append(SettingEntry(categorize_field(prop), format_key(prop), display_string(value)))

    # Everything else on the object that isn't bookkeeping is a setting too
    for key, value in raw.items():
        if value is None or key in _DEVICE_CONFIGURATION_FIELD_SET or key in RECORD_FIELDS or _is_bookkeeping(key):
            continue

        if key in NESTED_SETTING_OBJECTS and isinstance(value, dict):
            settings.extend(_nested_object_fields(value, NESTED_SETTING_OBJECTS[key]))
            continue

        if _looks_like_settings_array(key, value):
            expanded = _expand_settings_array(value)
            if expanded is not None:
                settings.extend(expanded)
                continue

        settings.append(SettingEntry(categorize_field(key), format_key(key), format_structured(value)))

    return _build_record(
        raw, PolicyFamily.DEVICE_CONFIGURATION, determine_platform(raw.get('@odata.type')),
        settings, PolicyFamily.DEVICE_CONFIGURATION.value,
    )


def _normalize_compliance_policy(raw: Dict) -> UnifiedPolicyRecord:
    settings = _named_fields(raw, COMPLIANCE_FIELDS, COMPLIANCE_CATEGORY)
    return _build_record(
        raw, PolicyFamily.COMPLIANCE_POLICY, determine_platform(raw.get('@odata.type')),
        settings, PolicyFamily.COMPLIANCE_POLICY.value,
    )


def _normalize_app_protection(raw: Dict) -> UnifiedPolicyRecord:
    settings = _named_fields(raw, APP_PROTECTION_FIELDS, APP_PROTECTION_CATEGORY)
    return _build_record(
        raw, PolicyFamily.APP_PROTECTION, determine_platform(raw.get('@odata.type')),
        settings, f"{PolicyFamily.APP_PROTECTION.value} Policy",
    )


def _normalize_configuration_policy(raw: Dict) -> UnifiedPolicyRecord:
    settings = []
    raw_settings = raw.get('settings')
    if isinstance(raw_settings, list):
        for setting in raw_settings:
            settings.extend(decode_setting(setting))

    return _build_record(
        raw, PolicyFamily.CONFIGURATION_POLICY, map_platform_from_string(raw.get('platforms')),
        settings, PolicyFamily.CONFIGURATION_POLICY.value,
    )


FAMILY_NORMALIZERS: Dict[PolicyFamily, Callable[[Dict], UnifiedPolicyRecord]] = {
    PolicyFamily.DEVICE_CONFIGURATION: _normalize_device_configuration,
    PolicyFamily.COMPLIANCE_POLICY: _normalize_compliance_policy,
    PolicyFamily.APP_PROTECTION: _normalize_app_protection,
    PolicyFamily.CONFIGURATION_POLICY: _normalize_configuration_policy,
}


def normalize(raw, family) -> UnifiedPolicyRecord:
    """Convert a raw Graph policy object into a UnifiedPolicyRecord.

    Parameters:
        raw: Raw policy object as returned by Graph (a non-mapping is treated
             as an empty object)
        family: PolicyFamily or its display label, selecting the extraction rules

    Returns:
        UnifiedPolicyRecord: Normalized record; settings may be empty

    Raises:
        ValueError: If family doesn't name a known policy family
    """
    policy_family = PolicyFamily.parse(family)
    return FAMILY_NORMALIZERS[policy_family](raw if isinstance(raw, dict) else {})


def normalize_auxiliary(raw, kind: str) -> UnifiedPolicyRecord:
    """Normalize a Group Policy, security baseline or enrollment configuration object.

    These sources have no dedicated extraction rules: every non-bookkeeping
    property becomes a setting under the source's own category, and the record
    is filed under the Configuration Policy family.

    Parameters:
        raw: Raw Graph object
        kind (str): One of AUXILIARY_KINDS

    Raises:
        ValueError: If kind isn't a known auxiliary source
    """
    if kind not in AUXILIARY_KINDS:
        raise ValueError(f"Unknown auxiliary policy source: {kind!r}")

    category, name_label, fixed_platform = AUXILIARY_KINDS[kind]
    raw = raw if isinstance(raw, dict) else {}

    settings = [
        SettingEntry(category, format_key(key), format_structured(value))
        for key, value in raw.items()
        if value is not None and key not in RECORD_FIELDS and not _is_bookkeeping(key)
    ]
    platform = fixed_platform or determine_platform(raw.get('@odata.type'))

    return _build_record(raw, PolicyFamily.CONFIGURATION_POLICY, platform, settings, name_label)
