from __future__ import annotations
import argparse, logging, sys
from memory_recall.cli.doctor import run_doctor

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="memory-recall", description="memory-recall: weighted memory retrieval tooling")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = p.add_subparsers(dest="cmd", required=True)

    d = sub.add_parser("doctor", help="Run determinism/cache/fallback/ranking checks with the offline provider and emit a signed report")
    d.add_argument("--dimension", type=int, default=256)
    d.add_argument("--runs", type=int, default=20)
    d.add_argument("--report-out", default=None, help="write the JSON report here instead of stdout")
    d.add_argument("--strict", action="store_true", help="also require the local sentence-transformers provider")
    return p

def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if args.cmd == "doctor":
        return run_doctor(
            dimension=args.dimension,
            runs=args.runs,
            report_out=args.report_out,
            strict=args.strict,
        )
    return 2

if __name__ == "__main__":
    raise SystemExit(main())
