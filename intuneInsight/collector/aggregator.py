"""
Policy collection - fetches every Intune policy family from Graph and normalizes it.

Each family is paginated and normalized on its own worker thread. A family that
fails (network, permissions, unexpected payload) is reported and skipped; the
others still load. Only when every family fails is the collection an error.
"""

# Standard library imports
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, List, Optional, Tuple

# Local imports
from ..config import DEFAULT_THREADS, GRAPH_ENDPOINTS
from ..graph.api_client import GraphAPIClient
from ..models import PolicyFamily, UnifiedPolicyRecord
from ..normalizer.policy_normalizer import normalize, normalize_auxiliary


class PolicyCollectionError(Exception):
    """Raised when no policy family could be loaded at all."""

    def __init__(self, failed_families: List[str]):
        self.failed_families = list(failed_families)
        super().__init__(f"Failed to load any policies. Failed endpoints: {', '.join(self.failed_families)}")


def fetch_all_pages(api_client: GraphAPIClient, url: str) -> List[Dict]:
    """Follow '@odata.nextLink' until the last page and return all items."""
    items = []
    next_link = url
    while next_link:
        page, next_link = api_client.fetch_page(next_link)
        items.extend(page)
    return items


def hydrate_device_configuration(api_client: GraphAPIClient, endpoint: str, item: Dict) -> Dict:
    """Replace a device configuration summary with its full object and assignments.

    Falls back to the summary when the detail request fails or returns something
    other than an object, and keeps the detail without assignments when only the
    assignments request fails.
    """
    policy_id = item.get('id') if isinstance(item, dict) else None
    if not policy_id:
        return item

    try:
        detailed = api_client.fetch_one(f"{endpoint}/{policy_id}")
    except Exception as e:
        print(f"    Failed to fetch detailed settings for policy {policy_id}: {e}")
        return item

    if not isinstance(detailed, dict):
        print(f"    Unexpected detail response for policy {policy_id}, using summary")
        return item

    try:
        assignments = fetch_all_pages(api_client, f"{endpoint}/{policy_id}/assignments")
        detailed = {**detailed, 'assignments': assignments}
    except Exception as e:
        print(f"    Failed to fetch assignments for policy {policy_id}: {e}")

    return detailed


def hydrate_configuration_policy(api_client: GraphAPIClient, endpoint: str, item: Dict) -> Dict:
    """Attach the Settings Catalog settings to a configuration policy summary."""
    policy_id = item.get('id') if isinstance(item, dict) else None
    if not policy_id:
        return item

    try:
        detailed = api_client.fetch_one(f"{endpoint}/{policy_id}?$expand=settings")
    except Exception as e:
        print(f"    Failed to fetch settings for policy {policy_id}: {e}")
        return item

    if not isinstance(detailed, dict):
        print(f"    Unexpected settings response for policy {policy_id}, using summary")
        return item

    return {**item, 'settings': detailed.get('settings') or []}


@dataclass(frozen=True)
class PolicySource:
    """One Graph collection and how to turn its items into unified records"""

    name: str
    endpoint: str
    normalizer: Callable[[Dict], UnifiedPolicyRecord]
    hydrator: Optional[Callable[[GraphAPIClient, str, Dict], Dict]] = None


POLICY_SOURCES = [
    PolicySource(
        "Device Configurations", GRAPH_ENDPOINTS['device_configurations'],
        partial(normalize, family=PolicyFamily.DEVICE_CONFIGURATION), hydrate_device_configuration,
    ),
    PolicySource(
        "Compliance Policies", GRAPH_ENDPOINTS['compliance_policies'],
        partial(normalize, family=PolicyFamily.COMPLIANCE_POLICY),
    ),
    PolicySource(
        "App Protection Policies", GRAPH_ENDPOINTS['managed_app_policies'],
        partial(normalize, family=PolicyFamily.APP_PROTECTION),
    ),
    PolicySource(
        "Configuration Policies", GRAPH_ENDPOINTS['configuration_policies'],
        partial(normalize, family=PolicyFamily.CONFIGURATION_POLICY), hydrate_configuration_policy,
    ),
    PolicySource(
        "Group Policy Configurations", GRAPH_ENDPOINTS['group_policy_configurations'],
        partial(normalize_auxiliary, kind='group_policy'),
    ),
    PolicySource(
        "Security Baselines", GRAPH_ENDPOINTS['intents'],
        partial(normalize_auxiliary, kind='security_baseline'),
    ),
    PolicySource(
        "Device Enrollment Configurations", GRAPH_ENDPOINTS['enrollment_configurations'],
        partial(normalize_auxiliary, kind='enrollment_configuration'),
    ),
]


@dataclass(frozen=True)
class FamilyOutcome:
    """Result of loading one policy source: its records, or the error that stopped it"""

    name: str
    records: Tuple[UnifiedPolicyRecord, ...] = ()
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CollectionReport:
    """Outcomes of one collection run, in source order"""

    outcomes: Tuple[FamilyOutcome, ...] = ()

    @property
    def policies(self) -> List[UnifiedPolicyRecord]:
        return [record for outcome in self.outcomes for record in outcome.records]

    @property
    def failed_families(self) -> List[str]:
        return [outcome.name for outcome in self.outcomes if not outcome.succeeded]

    @property
    def succeeded_families(self) -> List[str]:
        return [outcome.name for outcome in self.outcomes if outcome.succeeded]

    @property
    def all_failed(self) -> bool:
        return bool(self.outcomes) and not self.succeeded_families


class PolicyAggregator:
    """Loads all Intune policy families and combines them into one list"""

    def __init__(self, api_client: GraphAPIClient, sources: List[PolicySource] = None,
                 max_workers: int = DEFAULT_THREADS, progress_callback: Optional[Callable] = None):
        """Initialize the aggregator.

        Parameters:
            api_client (GraphAPIClient): Client providing fetch_page() and fetch_one()
            sources (List[PolicySource]): Sources to load (default: POLICY_SOURCES)
            max_workers (int): Worker threads for concurrent family and detail fetches
            progress_callback: Optional callback(percent, message) for progress reporting
        """
        self.api_client = api_client
        self.sources = list(POLICY_SOURCES if sources is None else sources)
        self.max_workers = max(1, max_workers)
        self.progress_callback = progress_callback

    def _report(self, percent: int, message: str):
        print(message)
        if self.progress_callback:
            self.progress_callback(percent, message)

    def fetch_all_pages(self, url: str) -> List[Dict]:
        """Follow '@odata.nextLink' until the last page and return all items."""
        return fetch_all_pages(self.api_client, url)

    def fetch_source(self, source: PolicySource) -> List[Dict]:
        """Fetch every raw item of a source, hydrating items concurrently when needed.

        Raises:
            Exception: Whatever the pagination requests raise; hydration
                failures are absorbed per item by the hydrator
        """
        items = self.fetch_all_pages(source.endpoint)

        if source.hydrator and items:
            hydrate = partial(source.hydrator, self.api_client, source.endpoint)
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                items = list(executor.map(hydrate, items))

        return items

    def _collect_source(self, source: PolicySource) -> FamilyOutcome:
        try:
            raw_items = self.fetch_source(source)
            records = tuple(source.normalizer(item) for item in raw_items)
        except Exception as e:
            print(f"  ✗ Failed to fetch {source.name}: {e}")
            return FamilyOutcome(source.name, error=str(e) or type(e).__name__)

        print(f"  ✓ Fetched {len(records)} {source.name}")
        return FamilyOutcome(source.name, records)

    def collect(self) -> CollectionReport:
        """Fetch and normalize every source concurrently.

        Returns:
            CollectionReport: Per-source outcomes in source order

        Raises:
            PolicyCollectionError: If every source failed
        """
        if not self.sources:
            return CollectionReport()

        self._report(10, f"Fetching {len(self.sources)} policy sources...")

        outcomes: List[Optional[FamilyOutcome]] = [None] * len(self.sources)
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(self.sources))) as executor:
            future_to_index = {
                executor.submit(self._collect_source, source): index
                for index, source in enumerate(self.sources)
            }

            done = 0
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                outcomes[index] = future.result()
                done += 1
                if self.progress_callback:
                    self.progress_callback(10 + int(80 * done / len(self.sources)),
                                           f"Loaded {done}/{len(self.sources)} policy sources")

        report = CollectionReport(tuple(outcomes))

        loaded = [f"{o.name} ({len(o.records)})" for o in report.outcomes if o.succeeded]
        if loaded:
            print(f"Successfully loaded: {', '.join(loaded)}")
        if report.failed_families:
            print(f"Failed to load: {', '.join(report.failed_families)}")

        if report.all_failed:
            raise PolicyCollectionError(report.failed_families)

        self._report(90, f"✓ Collected {len(report.policies)} policies")
        return report

    def get_all_policies(self) -> List[UnifiedPolicyRecord]:
        """Fetch every source and return the combined unified records.

        Raises:
            PolicyCollectionError: If every source failed
        """
        return self.collect().policies
