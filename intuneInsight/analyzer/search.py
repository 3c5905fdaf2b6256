"""
Policy search and filter configuration for the policy browser.
"""

# Standard library imports
from typing import Dict, List

# Local imports
from ..models import UnifiedPolicyRecord


ALL = 'all'


class PolicyFilter:
    """Free-text search combined with family and platform filters."""

    def __init__(self, search_term: str = '', policy_type: str = ALL, platform: str = ALL):
        """Initialize the filter.

        Args:
            search_term: Case-insensitive text matched against names, descriptions
                         and every setting's category, key, value and description
            policy_type: Family display label (e.g. 'Compliance Policy') or 'all'
            platform: Platform display label (e.g. 'iOS') or 'all'
        """
        self.search_term = (search_term or '').strip().lower()
        self.policy_type = policy_type or ALL
        self.platform = platform or ALL

    @classmethod
    def from_args(cls, args: Dict) -> 'PolicyFilter':
        """Build a filter from query parameters ('q', 'type', 'platform')."""
        return cls(
            search_term=args.get('q', ''),
            policy_type=args.get('type', ALL),
            platform=args.get('platform', ALL),
        )

    def _matches_search(self, policy: UnifiedPolicyRecord) -> bool:
        if not self.search_term:
            return True
        term = self.search_term
        if term in policy.name.lower() or term in policy.description.lower():
            return True
        return any(
            term in setting.category.lower()
            or term in setting.key.lower()
            or term in setting.value.lower()
            or term in setting.description.lower()
            for setting in policy.settings
        )

    def matches(self, policy: UnifiedPolicyRecord) -> bool:
        if self.policy_type != ALL and policy.family.value != self.policy_type:
            return False
        if self.platform != ALL and policy.platform.value != self.platform:
            return False
        return self._matches_search(policy)

    def apply(self, policies: List[UnifiedPolicyRecord]) -> List[UnifiedPolicyRecord]:
        return [policy for policy in policies if self.matches(policy)]
