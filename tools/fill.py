"""Run the escrow specs and write JSON fixtures plus an index of their digests."""

from __future__ import annotations

import argparse
import json
import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
DEFAULT_OUT = ROOT / "fixtures"


def _write_index(out: Path) -> int:
    index = []
    for path in sorted(out.rglob("*.json")):
        if path.name == "index.json":
            continue
        cases = json.loads(path.read_text()).get("cases", [])
        index.append(
            {
                "file": str(path.relative_to(out)),
                "cases": [{"name": c["name"], "digest": c["digest"]} for c in cases],
            }
        )
    (out / "index.json").write_text(json.dumps({"fixtures": index}, indent=2))
    return sum(len(entry["cases"]) for entry in index)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--output", type=Path, default=DEFAULT_OUT, help="fixture directory")
    parser.add_argument("-k", dest="keyword", default=None, help="only run matching specs")
    args = parser.parse_args(argv)

    env = dict(os.environ)
    env["PYTHONPATH"] = str(ROOT / "src")

    cmd = [sys.executable, "-m", "pytest", str(ROOT / "tests"), "-q", "--output", str(args.output)]
    if args.keyword:
        cmd += ["-k", args.keyword]
    print("Running:", " ".join(cmd))
    code = subprocess.call(cmd, env=env, cwd=str(ROOT))
    if code != 0 or not args.output.exists():
        return code

    count = _write_index(args.output)
    print(f"Indexed {count} escrow cases in {args.output / 'index.json'}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
