"""
File cache for unified policy records
"""

# Standard library imports
import json
import time
from pathlib import Path
from typing import Dict, List, Optional

# Third-party imports
import jwt

# Local imports
from .config import CACHE_DIR, CACHE_DURATION_SECONDS
from .models import UnifiedPolicyRecord


def tenant_id_from_token(token: str) -> Optional[str]:
    """Read the tenant ID ('tid' claim) from an access token without verifying it.

    Returns None when the token is not a decodable JWT or has no tenant claim.
    """
    try:
        decoded = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    tenant_id = decoded.get('tid')
    return tenant_id if isinstance(tenant_id, str) and tenant_id else None


class PolicyCache:
    """Caches normalized policies on disk so the browser can reload without Graph calls"""

    def __init__(self, cache_dir: Path = None, ttl_seconds: int = CACHE_DURATION_SECONDS):
        """Initialize the policy cache.

        Parameters:
            cache_dir (Path): Directory for cache files (default: 'cache')
            ttl_seconds (int): Age after which cached policies are discarded (default: 30 minutes)
        """
        self.cache_dir = Path(cache_dir or CACHE_DIR)
        self.cache_file = self.cache_dir / "policies" / "unified-policies.json"
        self.ttl_seconds = ttl_seconds

    def _read(self) -> Optional[Dict]:
        if not self.cache_file.exists():
            return None
        try:
            with open(self.cache_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError):
            return None
        if not isinstance(data, dict) or not isinstance(data.get('policies'), list):
            return None
        timestamp = data.get('timestamp')
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            return None
        return data

    def _age(self, data: Dict) -> float:
        return time.time() - float(data['timestamp'])

    def save_policies(self, policies: List[UnifiedPolicyRecord], tenant_id: str = None) -> None:
        """Write policies to the cache together with the current timestamp and their tenant."""
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.cache_file, 'w', encoding='utf-8') as f:
            json.dump({
                'timestamp': time.time(),
                'tenantId': tenant_id,
                'policies': [policy.to_dict() for policy in policies],
            }, f, indent=2, ensure_ascii=False)
        print(f"Cached {len(policies)} policies to {self.cache_file}")

    def load_policies(self, tenant_id: str = None) -> Optional[List[UnifiedPolicyRecord]]:
        """Load cached policies if the cache is still valid.

        Expired or unreadable cache files are removed.

        Parameters:
            tenant_id (str): Only return policies cached for this tenant (default: any tenant)

        Returns:
            Optional[List[UnifiedPolicyRecord]]: Cached policies, or None when
                there is no valid cache
        """
        if not self.cache_file.exists():
            return None

        data = self._read()
        if data is None:
            print("Cached policies could not be read, removing")
            self.clear_cache()
            return None

        age = self._age(data)
        if age > self.ttl_seconds:
            print(f"Cache expired ({round(age / 60)} minutes old), removing")
            self.clear_cache()
            return None

        if tenant_id is not None and data.get('tenantId') != tenant_id:
            print("Cached policies belong to another tenant, ignoring cache")
            return None

        try:
            policies = [UnifiedPolicyRecord.from_dict(item) for item in data['policies']]
        except (ValueError, TypeError, AttributeError) as e:
            print(f"Cached policies could not be decoded ({e}), removing")
            self.clear_cache()
            return None

        print(f"Loaded {len(policies)} policies from cache ({round(age / 60)} minutes old)")
        return policies

    def clear_cache(self) -> None:
        self.cache_file.unlink(missing_ok=True)

    def is_cache_valid(self) -> bool:
        data = self._read()
        return data is not None and self._age(data) <= self.ttl_seconds

    def get_cache_info(self) -> Optional[Dict]:
        """Cache status for display: exists, age in minutes and policy count."""
        data = self._read()
        if data is None:
            return None
        return {
            'exists': True,
            'age': round(self._age(data) / 60),
            'count': len(data['policies']),
        }
