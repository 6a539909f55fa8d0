import argparse
import random
import sys
from collections import Counter

from volta_router.config import settings
from volta_router.data.generator import generate_test_transactions, save_transactions_to_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="volta-generate-data",
        description="Generate a synthetic processor outcome dataset for the router.",
    )
    parser.add_argument("--count", type=int, default=540, help="Total records (split evenly across processors)")
    parser.add_argument("--output", default=settings.TEST_DATA_PATH, help="Destination JSON file")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible datasets")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.count < 1:
        print("--count must be positive", file=sys.stderr)
        return 2

    records = generate_test_transactions(args.count, rng=random.Random(args.seed))
    save_transactions_to_file(records, args.output)

    per_processor = Counter(r.processor for r in records)
    print(f"Generated {len(records)} transactions and saved to {args.output}")
    for name, n in per_processor.items():
        approved = sum(1 for r in records if r.processor == name and r.is_approved)
        print(f"  {name:<16} {n:>4} records  {100.0 * approved / n:5.1f}% approved")
    return 0


if __name__ == "__main__":
    sys.exit(main())
