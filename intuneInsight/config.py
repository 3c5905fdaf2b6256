"""
Microsoft Graph endpoints and tool-wide settings for Intune Insight
"""

MSGRAPH_DOMAIN = "graph.microsoft.com"

# Most Intune endpoints only expose the full object model on /beta
GRAPH_ENDPOINTS = {
    'me': f"https://{MSGRAPH_DOMAIN}/v1.0/me",
    'device_configurations': f"https://{MSGRAPH_DOMAIN}/beta/deviceManagement/deviceConfigurations",
    'compliance_policies': f"https://{MSGRAPH_DOMAIN}/beta/deviceManagement/deviceCompliancePolicies",
    'configuration_policies': f"https://{MSGRAPH_DOMAIN}/beta/deviceManagement/configurationPolicies",
    'managed_app_policies': f"https://{MSGRAPH_DOMAIN}/beta/deviceAppManagement/managedAppPolicies",
    'group_policy_configurations': f"https://{MSGRAPH_DOMAIN}/beta/deviceManagement/groupPolicyConfigurations",
    'intents': f"https://{MSGRAPH_DOMAIN}/beta/deviceManagement/intents",
    'enrollment_configurations': f"https://{MSGRAPH_DOMAIN}/beta/deviceManagement/deviceEnrollmentConfigurations",
}

# Delegated permissions the access token needs
GRAPH_SCOPES = [
    f"https://{MSGRAPH_DOMAIN}/DeviceManagementConfiguration.Read.All",
    f"https://{MSGRAPH_DOMAIN}/DeviceManagementApps.Read.All",
    f"https://{MSGRAPH_DOMAIN}/DeviceManagementManagedDevices.Read.All",
    f"https://{MSGRAPH_DOMAIN}/DeviceManagementServiceConfig.Read.All",
]

REQUEST_TIMEOUT = 30

# Worker threads used for concurrent family and detail fetches
DEFAULT_THREADS = 8

# Unified policies cache
CACHE_DIR = "cache"
CACHE_DURATION_SECONDS = 30 * 60

# Dashboard statistics
RECENT_WINDOW_DAYS = 30
RECENT_LIMIT = 10
DEFAULT_COLOR = "#6b7280"

TYPE_COLORS = {
    "Device Configuration": "#3b82f6",
    "Compliance Policy": "#22c55e",
    "App Protection": "#f97316",
    "Configuration Policy": "#8b5cf6",
}

PLATFORM_COLORS = {
    "Windows": "#3b82f6",
    "iOS": "#22c55e",
    "Android": "#f97316",
    "macOS": "#8b5cf6",
    "All Platforms": DEFAULT_COLOR,
}
