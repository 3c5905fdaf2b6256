"""Pytest configuration and shared fixtures"""
from typing import Dict, List, Optional, Tuple

import pytest

from intuneInsight.config import GRAPH_ENDPOINTS
from intuneInsight.models import PolicyFamily, Platform, SettingEntry, UnifiedPolicyRecord


COLLECTION_ENDPOINT_KEYS = [
    'device_configurations', 'compliance_policies', 'managed_app_policies',
    'configuration_policies', 'group_policy_configurations', 'intents',
    'enrollment_configurations',
]


class FakeGraphClient:
    """Stands in for GraphAPIClient; serves canned pages and objects by URL.

    A page or object registered as an Exception is raised instead of returned.
    Unregistered URLs raise LookupError, like a failed request would.
    """

    def __init__(self, pages: Dict = None, objects: Dict = None):
        self.pages = dict(pages or {})
        self.objects = dict(objects or {})
        self.requested: List[str] = []

    def fetch_page(self, url: str) -> Tuple[List[Dict], Optional[str]]:
        self.requested.append(url)
        if url not in self.pages:
            raise LookupError(f"No page registered for {url}")
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        return page

    def fetch_one(self, url: str) -> Dict:
        self.requested.append(url)
        if url not in self.objects:
            raise LookupError(f"No object registered for {url}")
        obj = self.objects[url]
        if isinstance(obj, Exception):
            raise obj
        return obj


@pytest.fixture
def empty_tenant_pages():
    """One empty page for every policy collection"""
    return {GRAPH_ENDPOINTS[key]: ([], None) for key in COLLECTION_ENDPOINT_KEYS}


@pytest.fixture
def oma_camera_policy():
    """Windows custom profile with a single OMA setting turning the camera off"""
    return {
        "@odata.type": "#microsoft.graph.windows10CustomConfiguration",
        "id": "oma-1",
        "displayName": "Disable Camera",
        "lastModifiedDateTime": "2024-03-05T10:15:30.1234567Z",
        "omaSettings": [
            {
                "@odata.type": "#microsoft.graph.omaSettingInteger",
                "displayName": "Allow Camera",
                "omaUri": "./Device/Vendor/MSFT/Policy/Config/Camera/AllowCamera",
                "value": 0,
            }
        ],
    }


@pytest.fixture
def ios_compliance_policy():
    return {
        "@odata.type": "#microsoft.graph.iosCompliancePolicy",
        "id": "comp-1",
        "displayName": "iOS Baseline",
        "description": "Passcode and OS requirements",
        "passcodeRequired": True,
        "passwordRequired": True,
        "passwordMinimumLength": 6,
        "osMinimumVersion": "16.0",
        "assignments": [
            {"target": {"groupId": "group-a"}},
            {"target": {"@odata.type": "#microsoft.graph.allDevicesAssignmentTarget"}},
        ],
    }


@pytest.fixture
def settings_catalog_policy():
    """Settings Catalog policy with a choice setting that has a child setting"""
    return {
        "id": "sc-1",
        "name": "Defender Baseline",
        "platforms": "windows10",
        "lastModifiedDateTime": "2024-01-15T08:00:00Z",
        "settings": [
            {
                "id": "0",
                "settingInstance": {
                    "@odata.type": "#microsoft.graph.deviceManagementConfigurationChoiceSettingInstance",
                    "settingDefinitionId": "device_vendor_msft_policy_config_defender_allowrealtimemonitoring",
                    "choiceSettingValue": {
                        "value": "device_vendor_msft_policy_config_defender_allowrealtimemonitoring_1",
                        "children": [
                            {
                                "settingDefinitionId": "device_vendor_msft_policy_config_defender_avgcpuloadfactor",
                                "simpleSettingValue": {"value": 50},
                            }
                        ],
                    },
                },
            }
        ],
    }


def make_record(record_id: str = "p1", name: str = "Policy", family: PolicyFamily = PolicyFamily.DEVICE_CONFIGURATION,
                platform: Platform = Platform.WINDOWS, last_modified: str = "Unknown",
                groups: Tuple[str, ...] = (), settings: Tuple[SettingEntry, ...] = (),
                description: str = "") -> UnifiedPolicyRecord:
    """Build a UnifiedPolicyRecord with sensible defaults for tests"""
    return UnifiedPolicyRecord(
        id=record_id,
        name=name,
        description=description,
        family=family,
        platform=platform,
        last_modified=last_modified,
        created_by="Unknown",
        assigned_groups=groups,
        settings=settings,
    )


@pytest.fixture
def sample_records():
    return [
        make_record("dc-1", "Windows Restrictions", PolicyFamily.DEVICE_CONFIGURATION, Platform.WINDOWS,
                    "3/1/2024", ("group-a",),
                    (SettingEntry("Hardware", "Camera Blocked", "true"),)),
        make_record("comp-1", "iOS Baseline", PolicyFamily.COMPLIANCE_POLICY, Platform.IOS,
                    "2/20/2024", (),
                    (SettingEntry("Compliance Requirements", "Password Minimum Length", "6"),),
                    description="Passcode requirements"),
        make_record("app-1", "Android MAM", PolicyFamily.APP_PROTECTION, Platform.ANDROID,
                    "Unknown", ("group-b",),
                    (SettingEntry("App Protection", "PIN Required", "true"),)),
    ]


@pytest.fixture
def record_factory():
    return make_record
