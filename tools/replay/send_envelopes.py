from __future__ import annotations

import argparse
import glob
import json
import sys
from pathlib import Path

# Allow running from repo root without installing as a package.
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

import redis  # type: ignore

from framebus.contracts.catalog import REQUEST_TYPES
from framebus.contracts.validation import validate_envelope_dict
from framebus.core.errors import BusError


def _iter_envelope_files(root: Path) -> list[Path]:
    return [Path(p) for p in sorted(glob.glob(str(root / "*.json")))]


def main() -> None:
    ap = argparse.ArgumentParser(description="Replay golden frame -> host envelopes into the inbound stream.")
    ap.add_argument("--redis-url", required=True)
    ap.add_argument("--stream", default="framebus.frame_to_host")
    ap.add_argument("--envelopes-dir", default=str(Path("contracts") / "golden_envelopes"))
    ap.add_argument("--dry-run", action="store_true")
    ap.add_argument(
        "--fail-on-invalid",
        action="store_true",
        help="By default invalid (dirty) envelopes are skipped. Use this flag to fail fast instead.",
    )
    args = ap.parse_args()

    root = Path(args.envelopes_dir)
    files = _iter_envelope_files(root)
    if not files:
        raise SystemExit(f"no golden envelopes found under {root}")

    r = redis.Redis.from_url(args.redis_url, decode_responses=True)
    for fp in files:
        ev = json.loads(fp.read_text(encoding="utf-8"))
        try:
            env = validate_envelope_dict(ev)
        except BusError as e:
            if args.fail_on_invalid:
                raise
            print(f"[skip-invalid] {fp.name}: {e}")
            continue
        if env.type not in REQUEST_TYPES:
            # Replies and pushes travel host -> frame only.
            print(f"[skip-reply] {fp.name}: {env.type}")
            continue
        body = json.dumps(ev, ensure_ascii=False)
        if args.dry_run:
            print(f"[dry-run] xadd {args.stream} <- {fp.name}")
        else:
            r.xadd(args.stream, {"envelope": body})
            print(f"xadd {args.stream} <- {fp.name}")


if __name__ == "__main__":
    main()
