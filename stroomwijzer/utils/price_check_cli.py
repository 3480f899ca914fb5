"""
Command-line utility for running a price check for one stored profile.

This script provides a simple interface to refresh a user's price check
outside the API, e.g. from a scheduled job.
"""

import argparse
import asyncio
import logging
import os
import sys

from ..config import ApplicationConfig, configure_logging
from ..exceptions import StroomwijzerError
from ..main import build_services
from ..models import PriceCheckResult, PriceCheckStatus


def print_status(status: PriceCheckStatus) -> None:
    """Print the age of the latest stored price check."""
    if status.result is None:
        print("❌ No price check stored for this profile")
        return

    print(f"📅 Latest price check: {status.result.checked_at}")
    print(f"⏰ Age: {status.age_hours:.1f} hours ago")

    if status.age_hours < 2:
        print("✅ Price check is very recent")
    elif not status.is_stale:
        print("🔶 Price check is from the last 24 hours")
    else:
        print("🔴 Price check is older than 24 hours")


def print_result(result: PriceCheckResult) -> None:
    """Print a price check summary."""
    print(f"\n📊 Usage ({result.usage_source}): {result.user_kwh_per_month:.0f} kWh/month "
          f"at €{result.user_rate_per_kwh:.4f}/kWh")
    print(f"🌐 Market data: {result.market_source}")

    if not result.has_offers:
        print("❌ No market offers available")
    for position, offer in enumerate(result.top2, start=1):
        print(f"  {position}. {offer.provider_name} ({offer.contract_type.value}): "
              f"€{offer.rate_per_kwh:.4f}/kWh, effective €{offer.effective_monthly_cost_eur:.2f}/month")

    if result.monthly_savings_eur is not None:
        print(f"💶 Monthly savings: €{result.monthly_savings_eur:.2f}")
    print(f"➡️  Recommendation: {result.recommendation.value}")
    if result.reasoning:
        print(f"💬 {result.reasoning}")


def main():
    """Main function with command-line interface."""
    parser = argparse.ArgumentParser(
        description="Run a market price check for a stored profile and store the result",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  stroomwijzer-price-check --user-id abc123                 # Run a price check
  stroomwijzer-price-check --user-id abc123 --check-only    # Show age of the latest check
  stroomwijzer-price-check --user-id abc123 --db-path custom.db

The price check will:
1. Load the profile and its verified (or estimated) usage
2. Fetch live market offers, or fall back to the reference table
3. Rank offers by effective monthly cost
4. Recommend SWITCH or STAY and store the result
        """
    )

    parser.add_argument(
        '--user-id',
        type=str,
        required=True,
        help='User id of the profile to check'
    )

    parser.add_argument(
        '--db-path',
        type=str,
        help='Path to the SQLite database file (optional)',
        default=None
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress all output except errors'
    )

    parser.add_argument(
        '--check-only',
        action='store_true',
        help='Only show the age of the latest price check without running one'
    )

    args = parser.parse_args()

    config = ApplicationConfig()
    if args.db_path:
        config.database.database_path = os.path.abspath(args.db_path)

    configure_logging(config.logging)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    try:
        services = build_services(config)
        price_check_service = services["price_check_service"]

        if args.check_only:
            status = asyncio.run(price_check_service.latest(args.user_id))
            print_status(status)
            return

        if not args.quiet:
            print(f"🚀 Running price check for {args.user_id}...")

        result = asyncio.run(price_check_service.run(args.user_id))

        if not args.quiet:
            print_result(result)

    except KeyboardInterrupt:
        print("\n⚠️  Price check cancelled by user")
        sys.exit(1)
    except StroomwijzerError as e:
        print(f"❌ {type(e).__name__}: {e.message}")
        sys.exit(1)
    except Exception as e:
        print(f"❌ Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
