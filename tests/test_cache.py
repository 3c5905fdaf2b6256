"""Tests for the policy file cache"""

import json
import time

import jwt

from intuneInsight.cache import PolicyCache, tenant_id_from_token


class TestPolicyCache:
    """Test saving, loading and expiring cached policies"""

    def test_round_trip(self, tmp_path, sample_records):
        cache = PolicyCache(tmp_path)
        cache.save_policies(sample_records)

        assert cache.cache_file == tmp_path / "policies" / "unified-policies.json"
        assert cache.load_policies() == sample_records
        assert cache.is_cache_valid()

    def test_missing_cache(self, tmp_path):
        cache = PolicyCache(tmp_path)
        assert cache.load_policies() is None
        assert not cache.is_cache_valid()
        assert cache.get_cache_info() is None

    def test_expired_cache_is_removed(self, tmp_path, sample_records):
        cache = PolicyCache(tmp_path, ttl_seconds=60)
        cache.save_policies(sample_records)

        data = json.loads(cache.cache_file.read_text(encoding='utf-8'))
        data['timestamp'] = time.time() - 120
        cache.cache_file.write_text(json.dumps(data), encoding='utf-8')

        assert cache.load_policies() is None
        assert not cache.cache_file.exists()

    def test_corrupt_cache_is_removed(self, tmp_path):
        cache = PolicyCache(tmp_path)
        cache.cache_file.parent.mkdir(parents=True)
        cache.cache_file.write_text("not json", encoding='utf-8')

        assert cache.load_policies() is None
        assert not cache.cache_file.exists()

    def test_cache_info(self, tmp_path, sample_records):
        cache = PolicyCache(tmp_path)
        cache.save_policies(sample_records)

        assert cache.get_cache_info() == {'exists': True, 'age': 0, 'count': 3}

    def test_clear_cache(self, tmp_path, sample_records):
        cache = PolicyCache(tmp_path)
        cache.clear_cache()
        cache.save_policies(sample_records)
        cache.clear_cache()
        assert not cache.cache_file.exists()

    def test_invalid_timestamp_is_treated_as_corrupt(self, tmp_path, sample_records):
        cache = PolicyCache(tmp_path)
        cache.save_policies(sample_records)

        data = json.loads(cache.cache_file.read_text(encoding='utf-8'))
        data['timestamp'] = "yesterday"
        cache.cache_file.write_text(json.dumps(data), encoding='utf-8')

        assert not cache.is_cache_valid()
        assert cache.get_cache_info() is None
        assert cache.load_policies() is None
        assert not cache.cache_file.exists()


class TestTenantScope:
    """Test cached policies are only handed to the tenant they were fetched for"""

    def test_same_tenant(self, tmp_path, sample_records):
        cache = PolicyCache(tmp_path)
        cache.save_policies(sample_records, "tenant-a")
        assert cache.load_policies("tenant-a") == sample_records

    def test_other_tenant_is_ignored(self, tmp_path, sample_records):
        """Test a tenant mismatch returns nothing but keeps the file"""
        cache = PolicyCache(tmp_path)
        cache.save_policies(sample_records, "tenant-a")

        assert cache.load_policies("tenant-b") is None
        assert cache.cache_file.exists()

    def test_no_tenant_filter(self, tmp_path, sample_records):
        cache = PolicyCache(tmp_path)
        cache.save_policies(sample_records, "tenant-a")
        assert cache.load_policies() == sample_records

    def test_tenant_id_from_token(self):
        token = jwt.encode({"tid": "tenant-a"}, "intune-insight-test-signing-key-0123456789", algorithm="HS256")
        assert tenant_id_from_token(token) == "tenant-a"

    def test_tenant_id_from_garbage(self):
        assert tenant_id_from_token("not-a-jwt") is None
        assert tenant_id_from_token(jwt.encode({"sub": "x"}, "k" * 32, algorithm="HS256")) is None
