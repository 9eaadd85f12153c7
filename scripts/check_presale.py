#!/usr/bin/env python3
"""
Presale Check Script

Prints presale progress and the latest purchases from a running
distributor.

Usage:
    python scripts/check_presale.py --url URL

    # Or with environment variables:
    export API_URL=https://presale.example.com
    python scripts/check_presale.py

Example:
    python scripts/check_presale.py --url http://localhost:3000 --limit 5 --balances
"""

import argparse
import os
import sys
import requests
from typing import Optional


def fetch(api_url: str, path: str) -> Optional[object]:
    url = f"{api_url.rstrip('/')}{path}"

    try:
        response = requests.get(url, timeout=30)

        if response.status_code == 200:
            return response.json()
        elif response.status_code == 503:
            error = response.json().get("error", {})
            print(f"  [ERROR] {error.get('code', 'UNAVAILABLE')}: {error.get('message', response.text)}")
            return None
        else:
            print(f"  [ERROR] {response.status_code}: {response.text}")
            return None

    except requests.exceptions.ConnectionError:
        print(f"  [ERROR] Cannot connect to {api_url}")
        return None
    except requests.exceptions.Timeout:
        print(f"  [ERROR] Request timeout")
        return None
    except Exception as e:
        print(f"  [ERROR] {e}")
        return None


def print_stats(stats: dict, symbol: str):
    print(f"  Raised:      {stats['total_base_raised']:.4f} SOL")
    print(f"  Sold:        {stats['total_token_sold']:,} {symbol}")
    print(f"  Burned:      {stats['total_burned']:,} {symbol}")
    print(f"  Purchases:   {stats['purchase_count']}")

    if stats["cap"] is not None:
        print(f"  Cap:         {stats['cap']:,} ({stats['cap_remaining']:,} remaining)")
    if stats["goal"] is not None:
        print(f"  Goal:        {stats['goal']} SOL ({stats['goal_progress_pct']}%)")
    if stats["burn_mode"] != "off":
        print(f"  Burn:        {stats['burn_mode']} @ {stats['burn_rate_bps']} bps")

    print(f"  Liquidity:   {stats['liquidity_reserved_base']:.4f} SOL reserved, "
          f"{stats['liquidity_added_base']:.4f} SOL added")

    if stats["degraded"]:
        print("  [WARN] Ledger unreachable, totals are not real")


def main():
    parser = argparse.ArgumentParser(description="Check presale distributor progress")
    parser.add_argument("--url", help="API base URL", default=os.environ.get("API_URL"))
    parser.add_argument("--limit", type=int, default=10, help="Recent purchases to show (max 25)")
    parser.add_argument("--balances", action="store_true", help="Also show live wallet balances")
    args = parser.parse_args()

    if not args.url:
        print("[ERROR] API_URL required. Use --url or set API_URL env var")
        sys.exit(1)

    config = fetch(args.url, "/config")
    if config is None:
        sys.exit(1)
    symbol = config["symbol"]

    print(f"\n{'='*60}")
    print(f"  Presale Distributor - {symbol}")
    print(f"{'='*60}")
    print(f"  API URL:  {args.url}")
    print(f"  Treasury: {config['treasury']}")
    print(f"  Mint:     {config['mint']}")
    print(f"{'='*60}\n")

    stats = fetch(args.url, "/stats")
    if stats is None:
        sys.exit(1)
    print_stats(stats, symbol)

    if args.balances:
        balances = fetch(args.url, "/balances")
        if balances:
            print()
            print(f"  Treasury:    {balances['treasury_sol']:.4f} SOL")
            print(f"  Distributor: {balances['distributor_sol']:.4f} SOL, "
                  f"{balances['distributor_tokens']:,.0f} {symbol}")

    recent = fetch(args.url, f"/recent?limit={args.limit}") or []
    print(f"\nLatest purchases ({len(recent)}):\n")
    for purchase in recent:
        print(f"  {purchase['recorded_at'] or '-':<32} {purchase['amount_sol']:>10.4f} SOL "
              f"-> {purchase['tokens']:>14,} {symbol}  {purchase['sender'][:8]}...")

    print()


if __name__ == "__main__":
    main()
