"""
Dashboard statistics - counts policies by family and platform and finds the ones worth a look.
"""

# Standard library imports
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, List, Optional

# Local imports
from ..config import DEFAULT_COLOR, PLATFORM_COLORS, RECENT_LIMIT, RECENT_WINDOW_DAYS, TYPE_COLORS
from ..models import UnifiedPolicyRecord


class PolicyStats:
    """Aggregates unified policies into the numbers shown on the dashboard"""

    @staticmethod
    def parse_display_date(value: str) -> Optional[datetime]:
        """Parse a M/D/YYYY lastModified value; None for 'Unknown' or anything else."""
        try:
            return datetime.strptime(value, "%m/%d/%Y")
        except (TypeError, ValueError):
            return None

    @staticmethod
    def count_by(policies: List[UnifiedPolicyRecord], attribute: str, colors: Dict[str, str]) -> List[Dict]:
        """Count policies per family or platform, in order of first appearance.

        Parameters:
            policies (List[UnifiedPolicyRecord]): Policies to count
            attribute (str): 'type' or 'platform'
            colors (Dict[str, str]): Chart color per value

        Returns:
            List[Dict]: One {attribute, count, color} entry per distinct value
        """
        if attribute == 'type':
            counts = Counter(policy.family.value for policy in policies)
        else:
            counts = Counter(policy.platform.value for policy in policies)

        return [
            {attribute: value, 'count': count, 'color': colors.get(value, DEFAULT_COLOR)}
            for value, count in counts.items()
        ]

    @staticmethod
    def recently_modified(policies: List[UnifiedPolicyRecord], now: datetime = None,
                          days: int = RECENT_WINDOW_DAYS, limit: int = RECENT_LIMIT) -> List[UnifiedPolicyRecord]:
        """Policies modified within the last `days` days, newest first."""
        cutoff = (now or datetime.now()) - timedelta(days=days)

        dated = []
        for policy in policies:
            modified = PolicyStats.parse_display_date(policy.last_modified)
            if modified and modified > cutoff:
                dated.append((modified, policy))

        dated.sort(key=lambda pair: pair[0], reverse=True)
        return [policy for _, policy in dated[:limit]]

    @staticmethod
    def summarize(policies: List[UnifiedPolicyRecord], now: datetime = None) -> Dict:
        """Build the dashboard statistics.

        Parameters:
            policies (List[UnifiedPolicyRecord]): Policies to summarize
            now (datetime): Reference time for the recent window (default: now)

        Returns:
            Dict: total, byType, byPlatform, unassigned and recentlyModified
                (the last two as serialized policies)
        """
        return {
            'total': len(policies),
            'byType': PolicyStats.count_by(policies, 'type', TYPE_COLORS),
            'byPlatform': PolicyStats.count_by(policies, 'platform', PLATFORM_COLORS),
            'unassigned': [policy.to_dict() for policy in policies if not policy.is_assigned],
            'recentlyModified': [policy.to_dict() for policy in PolicyStats.recently_modified(policies, now)],
        }
