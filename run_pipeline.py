#!/usr/bin/env python3
"""
Tree-Ring Chronology Pipeline
=============================

Single entry point to run the chronology and drought study.

Usage:
    python run_pipeline.py                    # Run complete pipeline
    python run_pipeline.py --chronology       # Screening, crossdating, chronology, drought correlation
    python run_pipeline.py --releases         # Growth-release detection only
    python run_pipeline.py --no-report        # Skip figures and HTML report

Pipeline Flow:
    1. Load & validate          -> ring widths, sites, drought indices
    2. Interseries correlation  -> data/output/series_correlation.csv
    3. Series filtering         -> data/output/ring_widths_filtered.csv
    4. Segment crossdating      -> data/output/segment_correlation.csv
    5. Detrending               -> data/output/rwi.csv
    6. Chronology               -> data/output/chronology.csv
    7. Drought correlation      -> data/output/climate_correlation.csv
    8. Growth releases          -> data/output/release_*.csv, results/releases/*.html
    9. Report                   -> results/report.html
"""

import argparse

from dendroclim.pipeline import DendroPipeline
from dendroclim.utils.logging_config import configure_logging


def run_chronology(pipeline: DendroPipeline):
    """Screening, crossdating, chronology and drought correlation"""
    print("\n" + "=" * 70)
    print("CHRONOLOGY PIPELINE")
    print("=" * 70)

    print("\n[1/4] Interseries correlation and filtering...")
    pipeline.screen_series()

    print("\n[2/4] Segment crossdating...")
    pipeline.check_crossdating()

    print("\n[3/4] Detrending and chronology...")
    pipeline.build_chronology()

    print("\n[4/4] Drought-index correlation...")
    pipeline.correlate_climate()

    pipeline.save_outputs()
    print("\nChronology pipeline complete.")


def run_releases(pipeline: DendroPipeline, make_plots: bool = True):
    """Growth-release detection on the unfiltered table"""
    print("\n" + "=" * 70)
    print("RELEASE DETECTION")
    print("=" * 70)

    releases = pipeline.detect_releases()
    pipeline.save_outputs()

    if make_plots:
        from dendroclim.report import ReportGenerator
        ReportGenerator(pipeline.config).write_release_plots(
            pipeline.rwl, releases, pipeline.results['release_criteria']
        )

    events = releases['events']
    print(f"\n{(events['kind'] == 'minor').sum()} minor and {(events['kind'] == 'major').sum()} major releases.")


def main():
    parser = argparse.ArgumentParser(
        description="Tree-Ring Chronology Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python run_pipeline.py                  # Run complete pipeline
    python run_pipeline.py --chronology     # Chronology steps only
    python run_pipeline.py --releases       # Release detection only
        """
    )

    parser.add_argument('--config', '-c', default=None, help='Path to configuration file')
    parser.add_argument('--chronology', action='store_true', help='Run chronology steps only')
    parser.add_argument('--releases', '-r', action='store_true', help='Run release detection only')
    parser.add_argument('--no-report', action='store_true', help='Skip figures and the HTML report')

    args = parser.parse_args()

    pipeline = DendroPipeline(config_path=args.config)
    configure_logging(pipeline.config, log_to_console=True)
    pipeline.load_data()

    if args.chronology:
        run_chronology(pipeline)
    elif args.releases:
        run_releases(pipeline, make_plots=not args.no_report)
    else:
        pipeline.run(write_outputs=True, make_report=not args.no_report)
        print(f"\nOutputs: {pipeline.output_path}")


if __name__ == '__main__':
    main()
