"""
Main CLI entry point for Intune Insight
"""

import argparse
import json
import sys
import time
import traceback
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Callable

from .analyzer.search import PolicyFilter
from .analyzer.stats import PolicyStats
from .cache import PolicyCache, tenant_id_from_token
from .collector.aggregator import PolicyAggregator
from .config import DEFAULT_THREADS
from .graph.api_client import GraphAPIClient
from .models import UnifiedPolicyRecord


def write_policies(policies: List[UnifiedPolicyRecord], output: str) -> Path:
    """Write unified policies as a JSON array.

    Parameters:
        policies: Unified policy records to export
        output: Output filename; '.json' is appended when missing

    Returns:
        Path: Path of the written file
    """
    output_file = Path(output if output.endswith('.json') else f"{output}.json")
    if output_file.parent != Path('.'):
        output_file.parent.mkdir(parents=True, exist_ok=True)

    with open(output_file, 'w', encoding='utf-8') as f:
        json.dump([policy.to_dict() for policy in policies], f, indent=2, ensure_ascii=False)

    return output_file


def run_collection(token: str, config: Dict, progress_callback: Optional[Callable] = None) -> Dict:
    """Collect and normalize all Intune policies with given configuration.

    This function can be called programmatically from the web interface or CLI.

    Args:
        token: MS Graph access token
        config: Collection configuration dictionary with keys:
            - threads: number of worker threads (default: 8)
            - proxy: proxy address 'host:port' (optional)
            - use_cache: whether cached policies may be returned (default: True)
            - clear_cache: whether to clear the cache first (default: False)
            - cache_dir: cache directory (optional)
        progress_callback: Optional callback function(percent, message) for progress updates

    Returns:
        Dictionary with:
            - success: bool
            - policies: list of UnifiedPolicyRecord
            - failed_families: names of policy sources that could not be loaded
            - stats: dashboard statistics for the policies
            - from_cache: whether the policies came from the cache
            - runtime: seconds spent
            - error: error message if success=False
    """
    try:
        start_time = time.time()
        cache = PolicyCache(config.get('cache_dir'))

        if config.get('clear_cache'):
            cache.clear_cache()
            if progress_callback:
                progress_callback(2, "✓ Cleared policy cache")

        api_client = GraphAPIClient(token, proxy=config.get('proxy'))

        # Validate token first, cached policies included
        is_valid, error_msg = api_client.validate_token()
        if not is_valid:
            return {'success': False, 'error': f"Invalid token: {error_msg}"}
        if progress_callback:
            progress_callback(5, "✓ Access token is valid")

        tenant_id = tenant_id_from_token(token)
        policies = cache.load_policies(tenant_id) if config.get('use_cache', True) else None
        failed_families = []
        from_cache = policies is not None

        if from_cache:
            if progress_callback:
                progress_callback(90, f"✓ Loaded {len(policies)} policies from cache")
        else:
            aggregator = PolicyAggregator(
                api_client,
                max_workers=config.get('threads') or DEFAULT_THREADS,
                progress_callback=progress_callback
            )
            report = aggregator.collect()
            policies = report.policies
            failed_families = report.failed_families
            cache.save_policies(policies, tenant_id)

        if progress_callback:
            progress_callback(100, "✓ Collection complete!")

        return {
            'success': True,
            'policies': policies,
            'failed_families': failed_families,
            'stats': PolicyStats.summarize(policies),
            'from_cache': from_cache,
            'runtime': time.time() - start_time
        }

    except Exception as e:
        error_msg = f"{str(e)}\n{traceback.format_exc()}"
        return {
            'success': False,
            'error': error_msg
        }


def format_runtime(total_runtime: float) -> str:
    hours = int(total_runtime // 3600)
    minutes = int((total_runtime % 3600) // 60)
    seconds = int(total_runtime % 60)

    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    elif minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def main(argv: List[str] = None):
    """CLI entry point for Intune Insight."""
    start_timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    parser = argparse.ArgumentParser(
        description='Collect and normalize Intune policies into one browsable list',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ---------- Collect every policy family ---------
  intune-insight --token YOUR_TOKEN

  ---------- Export the normalized policies to a file ---------
  intune-insight --token YOUR_TOKEN --output policies.json

  ---------- Only show iOS compliance policies mentioning passcodes ---------
  intune-insight --token YOUR_TOKEN --type "Compliance Policy" --platform iOS --search passcode

  ---------- Ignore the cache and fetch everything again ---------
  intune-insight --token YOUR_TOKEN --no-cache
        """
    )

    # Authentication
    parser.add_argument('--token', required=True, help='Microsoft Graph access token (required)')

    # Performance and output
    parser.add_argument('--threads', type=int, default=DEFAULT_THREADS,
                        help=f'Number of worker threads (default: {DEFAULT_THREADS})')
    parser.add_argument('--output', help='Write the normalized policies to this JSON file')

    # Filtering
    parser.add_argument('--type', default='all', help='Only list policies of this type (e.g. "Compliance Policy")')
    parser.add_argument('--platform', default='all', help='Only list policies for this platform (e.g. "Windows")')
    parser.add_argument('--search', default='', help='Only list policies whose name, description or settings contain TEXT')

    # Debugging and cache
    parser.add_argument('--proxy', metavar='HOST:PORT',
                        help='Route all HTTP requests through specified proxy (e.g. 127.0.0.1:8080) without certificate verification')
    parser.add_argument('--clear-cache', action='store_true', help='Clear cached policies before collecting')
    parser.add_argument('--no-cache', action='store_true', help='Do not use cached policies')

    args = parser.parse_args(argv)

    try:
        # Validate token format
        if not args.token or len(args.token) < 20:
            print("Error: Invalid token format")
            return 1

        config = {
            'threads': args.threads,
            'proxy': args.proxy,
            'clear_cache': args.clear_cache,
            'use_cache': not args.no_cache,
        }

        print(f"\n{'='*60}")
        print(f"Intune Insight - Policy Collection")
        print(f"{'='*60}")
        print(f"Started: {start_timestamp}")
        print(f"Threads: {args.threads}")
        print(f"{'='*60}")

        def progress_callback(percent: int, message: str):
            # Only print messages (not percents) for CLI output
            if message:
                print(message)

        result = run_collection(args.token, config, progress_callback=progress_callback)

        if not result['success']:
            print(f"\nError: {result['error']}")
            return 1

        policy_filter = PolicyFilter(args.search, args.type, args.platform)
        listed = policy_filter.apply(result['policies'])

        print(f"\n{'='*60}")
        print(f"Policies")
        print(f"{'='*60}")
        for policy in listed:
            groups = len(policy.assigned_groups)
            print(f"  [{policy.family.value}] {policy.name} ({policy.platform.value}, "
                  f"{len(policy.settings)} settings, {groups} assignment{'s' if groups != 1 else ''})")

        output_file = write_policies(listed, args.output) if args.output else None

        stats = result['stats']
        end_timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        print(f"\n{'='*60}")
        print(f"Summary")
        print(f"{'='*60}")
        print(f"Started:      {start_timestamp}")
        print(f"Finished:     {end_timestamp}")
        print(f"Runtime:      {format_runtime(result['runtime'])} ({result['runtime']:.2f}s)")
        print(f"Source:       {'cache' if result['from_cache'] else 'Microsoft Graph'}")
        print(f"Policies:     {stats['total']} ({len(listed)} listed)")
        for entry in stats['byType']:
            print(f"  {entry['type']:<22}{entry['count']}")
        print(f"Unassigned:   {len(stats['unassigned'])}")
        if result['failed_families']:
            print(f"⚠ Failed:     {', '.join(result['failed_families'])}")
        if output_file:
            print(f"Output:       {output_file}")
        print(f"\n💡 To browse the policies: python ./web/api_server.py\n")
        print(f"{'='*60}")

        return 0

    except KeyboardInterrupt:
        print("\n\nCollection interrupted by user")
        return 1
    except Exception as e:
        print(f"\nUnexpected error: {e}")
        traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
