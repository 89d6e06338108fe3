"""
Cache Admin
Explicit administrative command set for the local cache.

Commands:
    clear-shadow            remove shadow_claims_* and defi_llama_apy_cache*
    clear-metro             remove metro_transfers_*
    clear-all               both of the above
    stats                   per-category key counts
    first-deposit ADDRESS   show the stored first-deposit time

Run: arca-cache stats
"""
import argparse
import json
import logging
import sys
from typing import Any, Callable, Dict, List, Optional

from ..infrastructure.config import configure_logging
from ..infrastructure.local_storage import LocalStorage, get_storage
from .cache_manager import CacheManager
from .first_deposit import format_time_since

logger = logging.getLogger("CacheAdmin")


class CacheAdmin:
    def __init__(self, cache_manager: CacheManager):
        self.cache_manager = cache_manager
        self.commands: Dict[str, Callable[..., Any]] = {
            "clear-shadow": self.cache_manager.clear_shadow_caches,
            "clear-metro": self.cache_manager.clear_metro_caches,
            "clear-all": self.cache_manager.clear_all_caches,
            "stats": self.cache_manager.get_stats,
            "first-deposit": self.first_deposit,
        }

    def run(self, command: str, *args) -> Any:
        handler = self.commands.get(command)
        if handler is None:
            raise KeyError(f"Unknown command '{command}'. Available: {', '.join(sorted(self.commands))}")
        logger.info(f"Running admin command: {command}")
        return handler(*args)

    def first_deposit(self, address: str) -> Dict[str, Any]:
        timestamp = self.cache_manager.get_or_init_first_deposit_timestamp(address, has_deposits=False)
        return {
            "address": address.lower(),
            "first_deposit_ms": timestamp,
            "time_since": format_time_since(timestamp),
        }

    @staticmethod
    def format_stats(stats: Optional[Dict[str, int]]) -> str:
        if stats is None:
            return "❌ Could not retrieve cache statistics"
        return "\n".join([
            "📊 Cache Statistics:",
            f"   Shadow Claims: {stats['shadow_claims']}",
            f"   Metro Transfers: {stats['metro_transfers']}",
            f"   DeFi Llama: {stats['defi_llama']}",
            f"   Other: {stats['other']}",
            f"   Total: {stats['total']}",
        ])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="arca-cache", description="Inspect and invalidate the Arca local cache")
    parser.add_argument("--storage", help="SQLite path (defaults to ARCA_STORAGE_PATH)")
    parser.add_argument("--json", action="store_true", help="Print machine-readable output")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("clear-shadow", help="Remove Shadow claim and DeFi Llama caches")
    sub.add_parser("clear-metro", help="Remove Metro transfer caches")
    sub.add_parser("clear-all", help="Remove Shadow and Metro caches")
    sub.add_parser("stats", help="Show cache statistics")
    first = sub.add_parser("first-deposit", help="Show the stored first deposit for an address")
    first.add_argument("address")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    storage = LocalStorage(args.storage) if args.storage else get_storage()
    admin = CacheAdmin(CacheManager(storage))

    extra = [args.address] if args.command == "first-deposit" else []
    result = admin.run(args.command, *extra)

    if args.json:
        print(json.dumps(result))
    elif args.command == "stats":
        print(CacheAdmin.format_stats(result))
    elif isinstance(result, int):
        print(f"✅ Removed {result} cache entries")
    else:
        print(json.dumps(result, indent=2))

    return 1 if args.command == "stats" and result is None else 0


if __name__ == "__main__":
    sys.exit(main())
