"""
Unified policy record types shared by the normalizer, cache and web API
"""

# Standard library imports
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple, Any


class PolicyFamily(str, Enum):
    """Policy object families returned by Intune, by display label"""

    DEVICE_CONFIGURATION = "Device Configuration"
    COMPLIANCE_POLICY = "Compliance Policy"
    APP_PROTECTION = "App Protection"
    CONFIGURATION_POLICY = "Configuration Policy"

    @classmethod
    def parse(cls, value) -> 'PolicyFamily':
        """Resolve a family from an enum member, display label or member name.

        Raises:
            ValueError: If the value does not name a known family
        """
        if isinstance(value, cls):
            return value
        text = str(value or '').strip()
        for member in cls:
            if text.lower() in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"Unknown policy family: {value!r}")


class Platform(str, Enum):
    WINDOWS = "Windows"
    IOS = "iOS"
    ANDROID = "Android"
    MACOS = "macOS"
    ALL = "All Platforms"


# Separator between the segments of a hierarchical category
CATEGORY_SEPARATOR = " › "


@dataclass(frozen=True)
class SettingEntry:
    """One decoded configuration fact of a policy."""

    category: str
    key: str
    value: str
    description: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            'category': self.category,
            'key': self.key,
            'value': self.value,
            'description': self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'SettingEntry':
        return cls(
            category=str(data.get('category', '')),
            key=str(data.get('key', '')),
            value=str(data.get('value', '')),
            description=str(data.get('description') or ''),
        )


@dataclass(frozen=True)
class UnifiedPolicyRecord:
    """Family-independent view of a single Intune policy.

    Sequences are stored as tuples so a record can't be changed once the
    normalizer has built it.

    Attributes:
        id: Graph object ID of the policy
        name: Display name (never empty)
        description: Free text, empty string when absent
        family: Family whose extraction rules produced the record
        platform: Inferred target platform
        last_modified: Short date (M/D/YYYY) or "Unknown"
        created_by: Creator display name or "Unknown"
        assigned_groups: Group IDs of the assignments, empty when unassigned
        settings: Decoded settings, possibly empty
    """

    id: str
    name: str
    description: str
    family: PolicyFamily
    platform: Platform
    last_modified: str
    created_by: str
    assigned_groups: Tuple[str, ...] = field(default_factory=tuple)
    settings: Tuple[SettingEntry, ...] = field(default_factory=tuple)

    @property
    def is_assigned(self) -> bool:
        return len(self.assigned_groups) > 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape used by the cache and the web API."""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'type': self.family.value,
            'platform': self.platform.value,
            'lastModified': self.last_modified,
            'createdBy': self.created_by,
            'assignedGroups': list(self.assigned_groups),
            'settings': [setting.to_dict() for setting in self.settings],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'UnifiedPolicyRecord':
        """Rebuild a record from its serialized form.

        Raises:
            ValueError: If the family or platform is not recognized
        """
        return cls(
            id=str(data.get('id', '')),
            name=str(data.get('name', '')),
            description=str(data.get('description') or ''),
            family=PolicyFamily.parse(data.get('type')),
            platform=Platform(data.get('platform', Platform.ALL.value)),
            last_modified=str(data.get('lastModified') or 'Unknown'),
            created_by=str(data.get('createdBy') or 'Unknown'),
            assigned_groups=tuple(data.get('assignedGroups') or ()),
            settings=tuple(SettingEntry.from_dict(s) for s in data.get('settings') or ()),
        )

