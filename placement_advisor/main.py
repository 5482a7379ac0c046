#!/usr/bin/env python3
"""
WiFi placement advisor command line entry point.

Loads walk-through samples (and optionally a layout and a config) from JSON,
runs the coverage and placement analysis and writes a timestamped run folder.
"""

import argparse
import logging
import os
import sys
from dataclasses import replace
from datetime import datetime

from placement_advisor.advisor import PlacementAdvisor
from placement_advisor.config import ROUTER_MODES, load_config
from placement_advisor.data_collection.sample_store import load_samples
from placement_advisor.floor_plan_analyzer import load_layout
from placement_advisor.utils.error_handling import AdvisorError
from placement_advisor.utils.reporting import save_report


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='WiFi coverage analysis and router/extender placement advice')

    parser.add_argument('--samples', type=str, required=True,
                        help='Path to calibration samples JSON file')
    parser.add_argument('--layout', type=str, default=None,
                        help='Path to room layout JSON file (optional)')
    parser.add_argument('--config', type=str, default=None,
                        help='Path to advisor configuration JSON file (optional)')
    parser.add_argument('--router-mode', type=str, choices=ROUTER_MODES, default=None,
                        help='Recommend one router for the house or one per floor (default: from config)')
    parser.add_argument('--heatmap-resolution', type=float, default=None,
                        help='Grid step for exported heatmaps in house units (default: no heatmaps)')
    parser.add_argument('--output-dir', type=str, default='runs',
                        help='Parent directory for run output (default: runs)')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: INFO)')

    return parser.parse_args(argv)


def setup_environment(argv=None):
    """Parses arguments, sets up logging, and creates the output directory."""
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(asctime)s - %(levelname)s - %(message)s')

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    output_dir = os.path.join(args.output_dir, f"run_{timestamp}")
    os.makedirs(output_dir, exist_ok=True)

    logging.info(f"Run output will be saved to: {output_dir}")
    return args, output_dir


def print_summary(report):
    print("\n=== WiFi Coverage Analysis ===")
    coverage = report.coverage
    print(f"Rooms analyzed: {coverage.total_rooms}")
    print(f"Average signal: {coverage.coverage_percentage:.0%}")
    print(f"Well covered: {coverage.well_covered_rooms}  Weak areas: {coverage.weak_areas}")
    print(f"Network health: {report.health.value:.0%} ({report.health.label})")
    print(f"  {report.health.description}")

    if report.router is not None:
        print(f"\nRouter: {report.router.reasoning} (score {report.router.score:.2f})")
    else:
        print("\nRouter: no calibrated rooms to recommend from")
    for rec in report.floor_routers:
        print(f"  Floor {rec.floor}: {rec.room.name} (score {rec.score:.2f})")

    if report.extenders:
        print("\nExtenders:")
        for rec in report.extenders:
            print(f"  {rec.priority}. {rec.reasoning}")
    print(f"\nSuggested hardware: {report.device_strategy.description}")


def main(argv=None):
    """Main function for coverage analysis and placement recommendations."""
    args, output_dir = setup_environment(argv)
    try:
        config = load_config(args.config)
        if args.router_mode:
            config = replace(config, router_mode=args.router_mode).validate()
        store = load_samples(args.samples)
        layout = load_layout(args.layout)

        report = PlacementAdvisor(config).analyze(store, layout)
        save_report(report, output_dir, heatmap_resolution=args.heatmap_resolution)
    except (AdvisorError, FileNotFoundError) as e:
        logging.error(f"Analysis failed: {e}")
        return 1

    print_summary(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
