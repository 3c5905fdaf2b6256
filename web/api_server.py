"""
Flask API server for Intune Insight - serves normalized policies via REST endpoints
"""

# Standard library imports
import os
import sys
import traceback
from pathlib import Path

# Third-party imports
from flask import Flask, jsonify, request
from flask_cors import CORS
import jwt

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Local application imports
from intuneInsight.analyzer.search import PolicyFilter
from intuneInsight.analyzer.stats import PolicyStats
from intuneInsight.cache import PolicyCache, tenant_id_from_token
from intuneInsight.collector.aggregator import PolicyAggregator, PolicyCollectionError
from intuneInsight.graph.api_client import GraphAPIClient
from intuneInsight.models import PolicyFamily
from intuneInsight.normalizer.policy_normalizer import normalize

app = Flask(__name__)
CORS(app)

# Cache path - use absolute path based on script location
CACHE_DIR = Path(__file__).parent.parent / 'cache'

policy_cache = PolicyCache(CACHE_DIR)


def _no_cached_policies():
    return jsonify({'error': 'No cached policies. Load policies with POST /api/policies first.'}), 404


@app.route('/api/validate-token', methods=['POST'])
def validate_token():
    """Validate a Microsoft Graph access token."""
    data = request.get_json(silent=True) or {}
    token = data.get('token')

    if not token:
        return jsonify({'valid': False, 'error': 'No token provided'}), 400

    try:
        client = GraphAPIClient(token)
        is_valid, error_msg = client.validate_token()

        if is_valid:
            return jsonify({'valid': True})
        else:
            return jsonify({'valid': False, 'error': error_msg}), 401
    except Exception as e:
        return jsonify({'valid': False, 'error': str(e)}), 500


@app.route('/api/extract-tenant-id', methods=['POST'])
def extract_tenant_id():
    """Extract tenant ID from JWT token without full validation."""
    data = request.get_json(silent=True) or {}
    token = data.get('token')

    if not token:
        return jsonify({'tenant_id': None, 'error': 'No token provided'}), 400

    try:
        # Decode without verification to extract tenant ID
        decoded = jwt.decode(token, options={"verify_signature": False})
        tenant_id = decoded.get('tid')

        if tenant_id:
            return jsonify({'tenant_id': tenant_id})
        else:
            return jsonify({'tenant_id': None, 'error': 'No tenant ID found in token'}), 400
    except Exception as e:
        return jsonify({'tenant_id': None, 'error': f'Failed to decode token: {str(e)}'}), 400


@app.route('/api/policies', methods=['POST'])
def get_policies():
    """Fetch and normalize every Intune policy family.

    Body: {"token": "...", "use_cache": true}. The token is always validated;
    cached policies are only served to a token of the tenant they were fetched
    for. Families that fail are listed in 'failedFamilies' while the rest are
    still returned; only a total failure is an error (502).
    """
    data = request.get_json(silent=True) or {}
    token = data.get('token')

    if not token:
        return jsonify({'error': 'No token provided'}), 400

    try:
        client = GraphAPIClient(token)

        # Validate token first
        is_valid, error_msg = client.validate_token()
        if not is_valid:
            return jsonify({'error': f'Invalid token: {error_msg}'}), 401

        tenant_id = tenant_id_from_token(token)
        if tenant_id and data.get('use_cache', True):
            cached = policy_cache.load_policies(tenant_id)
            if cached is not None:
                return jsonify({
                    'policies': [policy.to_dict() for policy in cached],
                    'count': len(cached),
                    'failedFamilies': [],
                    'fromCache': True
                })

        report = PolicyAggregator(client).collect()
        policy_cache.save_policies(report.policies, tenant_id)

        return jsonify({
            'policies': [policy.to_dict() for policy in report.policies],
            'count': len(report.policies),
            'failedFamilies': report.failed_families,
            'fromCache': False
        })
    except PolicyCollectionError as e:
        return jsonify({'error': str(e), 'failedFamilies': e.failed_families}), 502
    except Exception as e:
        print(f"Error fetching policies: {str(e)}")
        traceback.print_exc()
        return jsonify({'error': str(e)}), 500


@app.route('/api/policies/search', methods=['GET'])
def search_policies():
    """Search cached policies. Query: q, type, platform (type/platform default to 'all')."""
    policies = policy_cache.load_policies()
    if policies is None:
        return _no_cached_policies()

    matches = PolicyFilter.from_args(request.args).apply(policies)
    return jsonify({
        'policies': [policy.to_dict() for policy in matches],
        'count': len(matches),
        'total': len(policies)
    })


@app.route('/api/stats', methods=['GET'])
def get_stats():
    """Dashboard statistics for the cached policies"""
    policies = policy_cache.load_policies()
    if policies is None:
        return _no_cached_policies()

    return jsonify(PolicyStats.summarize(policies))


@app.route('/api/normalize', methods=['POST'])
def normalize_policy():
    """Normalize one raw Graph object: {"family": "Compliance Policy", "raw": {...}}."""
    data = request.get_json(silent=True) or {}

    try:
        family = PolicyFamily.parse(data.get('family'))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    raw = data.get('raw')
    if not isinstance(raw, dict):
        return jsonify({'error': 'Field "raw" must be a JSON object'}), 400

    return jsonify(normalize(raw, family).to_dict())


@app.route('/api/cache/info', methods=['GET'])
def cache_info():
    """Cache status: exists, age in minutes and policy count."""
    info = policy_cache.get_cache_info()
    return jsonify(info or {'exists': False})


@app.route('/api/cache/clear', methods=['POST'])
def clear_cache():
    """Remove cached policies."""
    try:
        policy_cache.clear_cache()
        return jsonify({
            'success': True,
            'message': 'Successfully cleared policy cache'
        })
    except OSError as e:
        return jsonify({
            'error': f'Failed to clear cache: {str(e)}'
        }), 500


def main():
    """Main entry point for the API server"""
    port = int(os.environ.get('PORT', 5000))
    debug = os.environ.get('DEBUG', 'false').lower() == 'true'

    print(f"\n{'='*60}")
    print(f"Intune Insight API Server")
    print(f"{'='*60}")

    app.run(host='0.0.0.0', port=port, debug=debug)


if __name__ == '__main__':
    main()
