"""Tests for setting key formatting and category resolution"""

import pytest

from intuneInsight.normalizer.labels import (
    categorize_field,
    categorize_oma_uri,
    categorize_setting_id,
    categorize_setting_key,
    format_key,
    is_vendor_policy_id,
    parse_settings_catalog_id,
    strip_vendor_prefix,
)


class TestFormatKey:
    """Test display names for property names and setting IDs"""

    def test_camel_case_property(self):
        """Test camelCase properties are split into capitalized words"""
        assert format_key("passwordMinimumLength") == "Password Minimum Length"

    def test_defender_setting_id(self):
        """Test a Defender setting ID reads as a Microsoft Defender setting"""
        key = format_key("device_vendor_msft_policy_config_defender_allowrealtimemonitoring")
        assert "Microsoft Defender" in key
        assert key == "Microsoft Defender: Allowrealtimemonitoring"

    def test_admx_setting_id_drops_numeric_segments(self):
        """Test component and action segments are mapped and numbers dropped"""
        key = format_key("device_vendor_msft_policy_config_admx_icm_shellhousestoreopenwith_2")
        assert key == "Administrative Template: Information Collection: Shell House Store Open With"

    def test_short_parse_falls_back_to_title_case(self):
        """Test identifiers with too little left after parsing are title-cased"""
        assert parse_settings_catalog_id("device_vendor_msft_policy_config_x_1") == "X 1"

    def test_non_string_input(self):
        """Test format_key never raises on non-string input"""
        assert format_key(None) == ""
        assert format_key(42) == "42"


class TestVendorPrefix:
    """Test Policy CSP prefix handling"""

    def test_detects_device_and_user_prefixes(self):
        assert is_vendor_policy_id("device_vendor_msft_policy_config_defender_x")
        assert is_vendor_policy_id("user_vendor_msft_policy_config_browser_x")
        assert not is_vendor_policy_id("passwordRequired")
        assert not is_vendor_policy_id(None)

    def test_strip_removes_prefix(self):
        assert strip_vendor_prefix("device_vendor_msft_policy_config_defender_x") == "defender_x"
        assert strip_vendor_prefix("plainName") == "plainName"


class TestCategorizeField:
    """Test Device Configuration property categories"""

    @pytest.mark.parametrize("name, category", [
        ("passwordRequired", "Authentication"),
        ("cameraBlocked", "Hardware"),
        ("storageRequireEncryption", "Storage & Encryption"),
        ("screenCaptureBlocked", "Display"),
        ("powerLidCloseActionOnBattery", "Power Management"),
        ("edgeBlocked", "Web & Browser"),
    ])
    def test_known_fields(self, name, category):
        """Test keyword rules map properties to their category"""
        assert categorize_field(name) == category

    def test_unknown_field_is_general(self):
        """Test a property matching no rule falls back to General"""
        assert categorize_field("totallyUnknownField123") == "General"

    def test_non_string_is_general(self):
        assert categorize_field(None) == "General"


class TestCategorizeSettingKey:
    """Test categories for setting display names"""

    @pytest.mark.parametrize("name, category", [
        ("Delivery Optimization Download Mode", "Delivery Optimization"),
        ("Firewall Profile", "Security"),
        ("BitLocker Encryption", "Encryption"),
    ])
    def test_known_keys(self, name, category):
        assert categorize_setting_key(name) == category

    def test_unknown_key_is_general(self):
        assert categorize_setting_key("Secret Key") == "General"


class TestCategorizeSettingId:
    """Test hierarchical Settings Catalog categories"""

    def test_defender(self):
        """Test Defender IDs land under Security"""
        category = categorize_setting_id("device_vendor_msft_policy_config_defender_allowrealtimemonitoring")
        assert category == "Security › Microsoft Defender"

    def test_connectivity_printing(self):
        """Test connectivity printing settings get a three-level path"""
        category = categorize_setting_id("device_vendor_msft_policy_config_connectivity_diableprintingoverhttp")
        assert category == "Network › Connectivity › Printing"

    def test_msdt(self):
        category = categorize_setting_id("device_vendor_msft_policy_config_troubleshooting_msdt_allowdiagnostics")
        assert category == "System › Troubleshooting and Diagnostics › Microsoft Support Diagnostic Tool"

    def test_prefix_does_not_decide_category(self):
        """Test the 'device_' prefix alone does not put a setting under Device Settings"""
        assert categorize_setting_id("device_vendor_msft_policy_config_unknownarea_foo") == "General"

    def test_non_string_is_general(self):
        assert categorize_setting_id(None) == "General"


class TestCategorizeOmaUri:
    """Test OMA-URI categories"""

    def test_camera(self):
        assert categorize_oma_uri("./Device/Vendor/MSFT/Policy/Config/Camera/AllowCamera") == "Camera"

    def test_user_scoped_uri(self):
        """Test ./User URIs are categorized like ./Device ones"""
        assert categorize_oma_uri("./User/Vendor/MSFT/Policy/Config/Defender/AllowArchiveScanning") == "Windows Defender"

    def test_non_policy_csp_uri(self):
        """Test URIs outside the Policy CSP use the default category"""
        assert categorize_oma_uri("./Vendor/MSFT/BitLocker/RequireDeviceEncryption") == "Device Configuration"
