"""Tests for concurrent policy collection and per-family failure handling"""

import pytest

from conftest import FakeGraphClient
from intuneInsight.collector.aggregator import (
    POLICY_SOURCES,
    PolicyAggregator,
    PolicyCollectionError,
    PolicySource,
)
from intuneInsight.config import GRAPH_ENDPOINTS
from intuneInsight.models import PolicyFamily

DEVICE_CONFIGURATIONS = GRAPH_ENDPOINTS['device_configurations']
COMPLIANCE_POLICIES = GRAPH_ENDPOINTS['compliance_policies']
CONFIGURATION_POLICIES = GRAPH_ENDPOINTS['configuration_policies']


class TestPagination:
    """Test '@odata.nextLink' is followed to the last page"""

    def test_fetch_all_pages(self):
        next_page = f"{DEVICE_CONFIGURATIONS}?$skiptoken=abc"
        client = FakeGraphClient(pages={
            DEVICE_CONFIGURATIONS: ([{"id": "a"}, {"id": "b"}], next_page),
            next_page: ([{"id": "c"}], None),
        })
        items = PolicyAggregator(client).fetch_all_pages(DEVICE_CONFIGURATIONS)
        assert [item["id"] for item in items] == ["a", "b", "c"]


class TestPartialFailure:
    """Test one failing family does not stop the others"""

    def test_compliance_failure_keeps_device_configurations(self, empty_tenant_pages):
        """Test three device configurations load while compliance policies fail"""
        pages = dict(empty_tenant_pages)
        pages[DEVICE_CONFIGURATIONS] = ([
            {"id": "d1", "displayName": "One"},
            {"id": "d2", "displayName": "Two"},
            {"id": "d3", "displayName": "Three"},
        ], None)
        pages[COMPLIANCE_POLICIES] = RuntimeError("403 Forbidden")

        report = PolicyAggregator(FakeGraphClient(pages)).collect()

        assert len(report.policies) == 3
        assert all(p.family == PolicyFamily.DEVICE_CONFIGURATION for p in report.policies)
        assert report.failed_families == ["Compliance Policies"]
        assert "Device Configurations" in report.succeeded_families
        assert not report.all_failed

    def test_normalizer_error_fails_only_its_source(self):
        def broken(raw):
            raise KeyError("boom")

        sources = [
            PolicySource("Broken", "https://graph.test/broken", broken),
            PolicySource("Working", "https://graph.test/working", POLICY_SOURCES[1].normalizer),
        ]
        client = FakeGraphClient(pages={
            "https://graph.test/broken": ([{"id": "x"}], None),
            "https://graph.test/working": ([{"id": "y"}], None),
        })

        report = PolicyAggregator(client, sources=sources).collect()

        assert report.failed_families == ["Broken"]
        assert [p.id for p in report.policies] == ["y"]


class TestTotalFailure:
    """Test the collection only fails when every family failed"""

    def test_all_sources_failing_raises(self):
        with pytest.raises(PolicyCollectionError) as exc_info:
            PolicyAggregator(FakeGraphClient()).collect()

        message = str(exc_info.value)
        for source in POLICY_SOURCES:
            assert source.name in message
        assert exc_info.value.failed_families == [source.name for source in POLICY_SOURCES]

    def test_empty_tenant_is_not_an_error(self, empty_tenant_pages):
        """Test a tenant without policies returns an empty list"""
        assert PolicyAggregator(FakeGraphClient(empty_tenant_pages)).get_all_policies() == []

    def test_no_sources(self):
        report = PolicyAggregator(FakeGraphClient(), sources=[]).collect()
        assert report.outcomes == ()
        assert not report.all_failed


class TestHydration:
    """Test detail and assignment fetches for families that need them"""

    def test_device_configuration_detail_and_assignments(self, empty_tenant_pages):
        pages = dict(empty_tenant_pages)
        pages[DEVICE_CONFIGURATIONS] = ([{"id": "d1", "displayName": "Summary"}], None)
        pages[f"{DEVICE_CONFIGURATIONS}/d1/assignments"] = ([{"target": {"groupId": "g1"}}], None)
        objects = {
            f"{DEVICE_CONFIGURATIONS}/d1": {"id": "d1", "displayName": "Detailed", "cameraBlocked": True},
        }

        policies = PolicyAggregator(FakeGraphClient(pages, objects)).get_all_policies()

        assert len(policies) == 1
        assert policies[0].name == "Detailed"
        assert policies[0].assigned_groups == ("g1",)
        assert [s.key for s in policies[0].settings] == ["Camera Blocked"]

    def test_failed_detail_falls_back_to_summary(self, empty_tenant_pages):
        pages = dict(empty_tenant_pages)
        pages[DEVICE_CONFIGURATIONS] = ([{"id": "d1", "displayName": "Summary"}], None)

        policies = PolicyAggregator(FakeGraphClient(pages)).get_all_policies()

        assert [p.name for p in policies] == ["Summary"]

    def test_configuration_policy_settings_are_expanded(self, empty_tenant_pages, settings_catalog_policy):
        summary = {k: v for k, v in settings_catalog_policy.items() if k != "settings"}
        pages = dict(empty_tenant_pages)
        pages[CONFIGURATION_POLICIES] = ([summary], None)
        objects = {
            f"{CONFIGURATION_POLICIES}/sc-1?$expand=settings": {"settings": settings_catalog_policy["settings"]},
        }

        policies = PolicyAggregator(FakeGraphClient(pages, objects)).get_all_policies()

        assert len(policies) == 1
        assert len(policies[0].settings) == 2

    def test_configuration_policy_non_object_settings_keeps_summary(self, empty_tenant_pages):
        """Test an empty settings response keeps the summary and the family"""
        pages = dict(empty_tenant_pages)
        pages[CONFIGURATION_POLICIES] = ([{"id": "sc-1", "name": "Kept"}], None)
        objects = {f"{CONFIGURATION_POLICIES}/sc-1?$expand=settings": None}

        report = PolicyAggregator(FakeGraphClient(pages, objects)).collect()

        assert report.failed_families == []
        assert [p.name for p in report.policies] == ["Kept"]

    def test_device_configuration_non_object_detail_keeps_summary(self, empty_tenant_pages):
        pages = dict(empty_tenant_pages)
        pages[DEVICE_CONFIGURATIONS] = ([{"id": "d1", "displayName": "Summary"}], None)
        objects = {f"{DEVICE_CONFIGURATIONS}/d1": None}

        report = PolicyAggregator(FakeGraphClient(pages, objects)).collect()

        assert report.failed_families == []
        assert [p.name for p in report.policies] == ["Summary"]

    def test_assignments_span_pages(self, empty_tenant_pages):
        """Test assignments on a second page are attached too"""
        assignments = f"{DEVICE_CONFIGURATIONS}/d1/assignments"
        next_page = f"{assignments}?$skiptoken=xyz"
        pages = dict(empty_tenant_pages)
        pages[DEVICE_CONFIGURATIONS] = ([{"id": "d1", "displayName": "Summary"}], None)
        pages[assignments] = ([{"target": {"groupId": "g1"}}], next_page)
        pages[next_page] = ([{"target": {"groupId": "g2"}}], None)
        objects = {f"{DEVICE_CONFIGURATIONS}/d1": {"id": "d1", "displayName": "Detailed"}}

        policies = PolicyAggregator(FakeGraphClient(pages, objects)).get_all_policies()

        assert policies[0].assigned_groups == ("g1", "g2")


class TestOrderingAndProgress:
    """Test outcome order and progress reporting"""

    def test_outcomes_follow_source_order(self, empty_tenant_pages):
        report = PolicyAggregator(FakeGraphClient(empty_tenant_pages), max_workers=4).collect()
        assert [o.name for o in report.outcomes] == [s.name for s in POLICY_SOURCES]

    def test_progress_callback(self, empty_tenant_pages):
        calls = []
        PolicyAggregator(FakeGraphClient(empty_tenant_pages),
                         progress_callback=lambda percent, message: calls.append((percent, message))).collect()

        assert calls[0][0] == 10
        assert calls[-1][0] == 90
        assert all(0 <= percent <= 100 for percent, _ in calls)
