"""Find the cheapest way to buy a list of cards, shipping included."""
import argparse
import sys
from pathlib import Path

from .config import load_config, load_credentials, logger, setup_logging
from .errors import ConfigurationError, SolverError, UnsatisfiableItemError
from .exporter import export_solution, solution_to_frame
from .pipeline import build_providers, run_pipeline
from .policy import OptimizationConfig, ShippingPolicy, UnsatisfiablePolicy


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="cardbasket", description=__doc__)
    parser.add_argument("--config", type=Path, default=None,
                        help="YAML config file (default: $CARDBASKET_CONFIG or ./config.yaml).")
    parser.add_argument("--output-dir", type=Path, default=None,
                        help="Directory for the exported listing file.")
    parser.add_argument("--shipping-policy", choices=[p.value for p in ShippingPolicy], default=None,
                        help="How shipping enters the objective.")
    parser.add_argument("--unsatisfiable-policy", choices=[p.value for p in UnsatisfiablePolicy], default=None,
                        help="What to do with cards that have no listings.")
    parser.add_argument("--format", choices=["csv", "xlsx"], default=None,
                        help="Export format (default taken from output.filename).")
    parser.add_argument("--no-export", action="store_true", help="Print the basket without writing a file.")
    parser.add_argument("--log-level", default=None, help="Logging level, e.g. DEBUG.")
    return parser.parse_args(argv)


def apply_overrides(config, args):
    opt = config["optimization"]
    if args.shipping_policy:
        opt["shipping_policy"] = args.shipping_policy
    if args.unsatisfiable_policy:
        opt["unsatisfiable_policy"] = args.unsatisfiable_policy
    if args.output_dir:
        config["output"]["directory"] = str(args.output_dir)
    if args.format:
        stem = Path(config["output"]["filename"]).stem
        config["output"]["filename"] = f"{stem}.{args.format}"
    if args.log_level:
        config["logging"]["level"] = args.log_level.upper()
    return config


def main(argv=None):
    args = parse_args(argv)
    try:
        config = apply_overrides(load_config(args.config), args)
        setup_logging(config["logging"]["level"], config["logging"].get("file"))
        optimization_config = OptimizationConfig.from_dict(config["optimization"])
        catalog, offer_provider = build_providers(config, load_credentials())
    except ConfigurationError as e:
        logger.error(str(e))
        return 2

    try:
        result = run_pipeline(config, catalog, offer_provider, optimization_config=optimization_config)
    except (SolverError, UnsatisfiableItemError) as e:
        logger.error(f"Error in main: {e}")
        return 1

    outcome = result.outcome
    if outcome is None or not outcome.solved:
        logger.info("No feasible/optimal solution found.")
        return 1

    solution = outcome.solution
    logger.info("=== Optimal Solution Found ===")
    logger.info(f"Total Combined Cost: £{solution.total_cost:.2f}")
    logger.info(f"Chosen Sellers: {', '.join(solution.activated_vendors)}")
    if outcome.unsatisfiable_items:
        logger.warning("No listings for: " + ", ".join(i.label for i in outcome.unsatisfiable_items))
    print(solution_to_frame(solution).to_string(index=False))

    if not args.no_export:
        export_solution(solution, config["output"]["directory"], config["output"]["filename"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
