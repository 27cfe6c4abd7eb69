"""Offline reclassification of every stored line against the current codec.

Run this only while the canary service is stopped: it reads and rewrites the
same store document and takes no lock on it.
"""

import argparse
import logging
import sys

from canary.classifier import classify
from canary.codec import Codec, load_codec
from canary.config import Config
from canary.errors import CanaryError
from canary.models import Category, Record, StoreState
from canary.persistence import JsonDocumentBackend
from canary.store import CategorizedStore

logger = logging.getLogger(__name__)


def reclassify(state: StoreState, codec: Codec) -> StoreState:
    """Re-run classification over every stored record and build a fresh state.

    Only ``timestamp``, ``room`` and ``raw_message`` of each old record are
    used. Lines that now round-trip cleanly are dropped; the rest are sorted
    by timestamp (stable) and filed into new category lists. The seen counter
    carries over unchanged. A record whose reclassification raises is logged
    and dropped.
    """
    outcomes: list[Record] = []
    for old in state.all_records():
        try:
            outcome = classify(old.raw_message, old.room, old.timestamp, codec)
        except Exception:
            logger.warning(
                "Codec raised while reclassifying line from room %r at %s: %r",
                old.room, old.timestamp, old.raw_message, exc_info=True,
            )
            continue
        if outcome is not None:
            outcomes.append(outcome)

    outcomes.sort(key=lambda record: record.timestamp)

    fresh = StoreState(total_messages=state.total_messages)
    for outcome in outcomes:
        fresh.records[outcome.category].append(outcome)
    return fresh


def _format_counts(counts: dict[Category, int]) -> str:
    return ", ".join(f"{category.value}={count}" for category, count in counts.items())


def run_reclassification(db_path: str, codec_factory: str, dry_run: bool = False) -> StoreState:
    """Load the store document, reclassify it, and write it back unless ``dry_run``."""
    backend = JsonDocumentBackend(db_path)
    codec = load_codec(codec_factory)

    store = CategorizedStore(backend.load())
    if backend.skipped:
        logger.warning("Left out %d malformed entries from %s", backend.skipped, db_path)
    before = store.snapshot()
    logger.info("Before: seen=%d, %s", before.total_messages, _format_counts(before.counts()))

    after = reclassify(before, codec)
    logger.info("After: seen=%d, %s", after.total_messages, _format_counts(after.counts()))

    if dry_run:
        logger.info("Dry run, leaving %s untouched", db_path)
        return after

    store.replace_all(after)
    backend.save(store.snapshot())
    logger.info("Wrote reclassified store to %s", db_path)
    return after


def main(argv=None):
    """CLI: reclassify the store document with the configured (or given) codec."""
    config = Config.from_env()
    parser = argparse.ArgumentParser(description="Reclassify stored canary findings against the current codec")
    parser.add_argument("--db", default=config["storage"]["db_path"], help="store document path")
    parser.add_argument("--codec", default=config["codec"]["factory"], help="codec factory, module:Attribute")
    parser.add_argument("--dry-run", action="store_true", help="report counts without writing")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=str(config["logging"]["level"]).upper(),
        format="%(asctime)s [canary-rerun] %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )

    try:
        run_reclassification(args.db, args.codec, dry_run=args.dry_run)
    except CanaryError as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
