"""Command-line runner for MiniCAM Engine."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from minicam import logging
from minicam.scenario import Scenario


def _cli(argv: Sequence[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run a MiniCAM Engine scenario.")
    p.add_argument("structure", type=Path, help="Structural tree (YAML)")
    p.add_argument("--config", type=Path, default=None, help="Run configuration (YAML)")
    p.add_argument(
        "--add-on",
        dest="add_ons",
        type=Path,
        action="append",
        default=[],
        help="Structure document merged over the reference one (repeatable)",
    )
    p.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Write markets.csv, outputs.csv and summary.csv here",
    )
    p.add_argument(
        "--log-level",
        default=None,
        help="Default log level (overrides the config file)",
    )
    return p.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the scenario; return 0 when every period converged, 1 otherwise."""
    args = _cli(argv)
    log = logging.getLogger("minicam.main")

    overrides = {}
    if args.log_level is not None:
        overrides["logging"] = {"default_level": args.log_level, "events": {}}

    scn = Scenario.init(
        args.structure, config=args.config, add_ons=args.add_ons, **overrides
    )
    results = scn.run()

    if args.output_dir is not None:
        args.output_dir.mkdir(parents=True, exist_ok=True)
        results.market_dataframe().to_csv(args.output_dir / "markets.csv", index=False)
        results.output_dataframe(wide=True).to_csv(
            args.output_dir / "outputs.csv", index=False
        )
        results.summary.to_csv(args.output_dir / "summary.csv")
        log.info("Results written to %s", args.output_dir)

    log.info(
        "Setup %.3f s, run %.3f s, converged=%s",
        scn.setup_seconds, scn.run_seconds, results.converged,
    )
    return 0 if results.converged else 1


if __name__ == "__main__":
    raise SystemExit(main())
