"""Fit the free parameters of a preset experiment to its data.

The parameters to fit default to those flagged in the preset catalogue;
``--fit`` replaces that selection.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Sequence

from debkiss import fit_parameters, get_preset, load_parameter_set
from debkiss.presets import preset_names

LOGGER = logging.getLogger("fit_preset")


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Fit a DEBkiss preset to its observations")
    parser.add_argument("preset", choices=preset_names())
    parser.add_argument("--parameters", type=Path, help="JSON parameter catalogue replacing the preset's")
    parser.add_argument(
        "--fit",
        action="append",
        default=[],
        metavar="name",
        help="Parameter to fit (may repeat; default: the catalogue's fit flags)",
    )
    parser.add_argument("--max-evaluations", type=int, default=2000, help="Maximum likelihood evaluations")
    parser.add_argument("--display-every", type=int, default=50, help="Log progress every N evaluations")
    parser.add_argument(
        "--output-json",
        type=Path,
        help="Optional path to write the fitted values and fit summary as JSON",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")

    preset = get_preset(args.preset)
    parameters = load_parameter_set(args.parameters) if args.parameters else preset.parameters
    if args.fit:
        parameters = parameters.with_fit_flags(dict.fromkeys(args.fit))
    if not parameters.free_names():
        parser.error("no parameters selected for fitting")

    result = fit_parameters(
        parameters,
        preset.config,
        preset.datasets,
        preset.x0mat,
        preset.forcing,
        max_evaluations=args.max_evaluations,
        display_every=args.display_every,
    )

    print("\nBest-fit parameters:")
    for name in result.fitted:
        print(f"  {name} = {result.parameters[name]:.6g}")
    print(f"optimizer status: {result.success} ({result.message})")
    print(f"minus log-likelihood: {result.minus_log_likelihood:.6g}")

    if args.output_json:
        args.output_json.parent.mkdir(parents=True, exist_ok=True)
        args.output_json.write_text(json.dumps(result.as_dict(), indent=2), encoding="utf8")
        LOGGER.info("wrote fit summary to %s", args.output_json)

    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
