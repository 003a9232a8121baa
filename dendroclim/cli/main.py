"""Main CLI interface for the dendroclim analysis

Provides command-line commands for:
- Running the complete chronology study
- Screening series by interseries correlation
- Checking crossdating by segment
- Building the chronology and correlating it with drought indices
- Detecting growth releases
- Validating input data and checking configuration
"""

import click
import numpy as np
from pathlib import Path
from typing import Dict, Optional
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from dendroclim import __version__
from dendroclim.pipeline import DendroPipeline
from dendroclim.utils.config import ConfigLoader
from dendroclim.utils.logging_config import configure_logging, get_logger


console = Console()
logger = get_logger(__name__)


def _fmt(value, spec: str = '.3f') -> str:
    """Format a number for a rich table, "-" for NaN"""
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return "-"
    return format(value, spec)


def _init_pipeline(config: str, overrides: Optional[Dict] = None) -> DendroPipeline:
    """Create the pipeline and configure logging from its config"""
    pipeline = DendroPipeline(config=ConfigLoader(config, overrides=overrides))
    configure_logging(pipeline.config)
    return pipeline


config_option = click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    default='config/config.yaml',
    help='Path to configuration file'
)


@click.group()
@click.version_option(version=__version__, prog_name='dendroclim')
def cli():
    """
    dendroclim - tree-ring chronology and drought analysis

    Builds a robust mean-value chronology from ring-width series,
    correlates it with drought indices and detects growth releases.
    """
    pass


@cli.command()
@config_option
@click.option('--no-report', is_flag=True, help='Skip plotly figures and the HTML report')
def run(config, no_report):
    """
    Run the complete analysis

    Example:
        dendroclim run
        dendroclim run -c config/site_b.yaml --no-report
    """
    console.print(Panel.fit(
        "[bold cyan]dendroclim - Full Analysis[/bold cyan]",
        border_style="cyan"
    ))

    try:
        pipeline = _init_pipeline(config)

        console.print("\n[yellow]Running pipeline...[/yellow]")
        results = pipeline.run(write_outputs=True, make_report=not no_report)

        stats = results['chronology_stats']
        chronology = results['chronology']
        covered = chronology[chronology['samp_depth'] > 0]
        releases = results['releases']['events']

        table = Table(title="Analysis Summary", show_header=True, header_style="bold cyan")
        table.add_column("Item", style="cyan")
        table.add_column("Value", style="green", justify="right")

        table.add_row("Series loaded", str(pipeline.rwl.shape[1]))
        table.add_row("Series removed", str(len(results['removed'])))
        table.add_row("Chronology span", f"{covered.index.min()}-{covered.index.max()}" if len(covered) else "-")
        table.add_row("rbar", _fmt(stats['rbar']))
        table.add_row("EPS", _fmt(stats['eps']))
        table.add_row("Flagged segments", str(int(results['segments']['flagged'].sum())))
        table.add_row("Minor releases", str(int((releases['kind'] == 'minor').sum())))
        table.add_row("Major releases", str(int((releases['kind'] == 'major').sum())))

        console.print(table)
        console.print(f"\n[bold green]✓ Outputs written to:[/bold green] {pipeline.output_path}")

    except Exception as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {str(e)}")
        logger.exception("Pipeline run failed")
        raise click.Abort()


@cli.command()
@config_option
@click.option('--threshold', '-t', type=float, default=None, help='Override filtering.min_correlation')
def correlate(config, threshold):
    """
    Correlate each series with the mean of all other series

    Example:
        dendroclim correlate
        dendroclim correlate --threshold 0.4
    """
    console.print(Panel.fit(
        "[bold cyan]dendroclim - Interseries Correlation[/bold cyan]",
        border_style="cyan"
    ))

    try:
        pipeline = _init_pipeline(config, {'filtering.min_correlation': threshold})

        pipeline.load_data()
        pipeline.screen_series()
        pipeline.save_outputs()

        correlations = pipeline.results['correlations']
        removed = set(pipeline.results['removed']['series'])

        table = Table(title="Interseries Correlation", show_header=True, header_style="bold cyan")
        table.add_column("Series", style="cyan")
        table.add_column("r", justify="right")
        table.add_column("p-value", justify="right", style="dim")
        table.add_column("Years", justify="right", style="dim")
        table.add_column("Status")

        for name, row in correlations.iterrows():
            status = "[red]removed[/red]" if name in removed else "[green]kept[/green]"
            table.add_row(name, _fmt(row['r']), _fmt(row['p_value'], '.4f'), str(row['n_years']), status)

        console.print(table)
        console.print(f"\nMean r: {_fmt(correlations['r'].mean())}, removed {len(removed)} of {len(correlations)}")

    except Exception as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {str(e)}")
        logger.exception("Correlation failed")
        raise click.Abort()


@cli.command()
@config_option
@click.option('--seg-length', type=int, default=None, help='Override crossdating.seg_length')
def crossdate(config, seg_length):
    """
    Check crossdating over overlapping segments

    Example:
        dendroclim crossdate --seg-length 40
    """
    console.print(Panel.fit(
        "[bold cyan]dendroclim - Segment Crossdating[/bold cyan]",
        border_style="cyan"
    ))

    try:
        pipeline = _init_pipeline(config, {'crossdating.seg_length': seg_length})

        pipeline.load_data()
        pipeline.screen_series()
        pipeline.check_crossdating()
        pipeline.save_outputs()

        summary = pipeline.results['segment_summary']
        console.print(f"Critical r: {pipeline.results['critical_r']:.3f}")

        table = Table(title="Crossdating Flags", show_header=True, header_style="bold cyan")
        table.add_column("Series", style="cyan")
        table.add_column("Segments", justify="right")
        table.add_column("Flagged", justify="right")
        table.add_column("Flagged segments", style="yellow")

        for name, row in summary.iterrows():
            flagged = f"[red]{row['n_flagged']}[/red]" if row['n_flagged'] else "0"
            table.add_row(name, str(row['n_segments']), flagged, row['flagged_segments'])

        console.print(table)

    except Exception as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {str(e)}")
        logger.exception("Crossdating check failed")
        raise click.Abort()


@cli.command()
@config_option
def chronology(config):
    """
    Detrend series, build the chronology and correlate with drought indices

    Example:
        dendroclim chronology
    """
    console.print(Panel.fit(
        "[bold cyan]dendroclim - Chronology[/bold cyan]",
        border_style="cyan"
    ))

    try:
        pipeline = _init_pipeline(config)
        pipeline.load_data()
        pipeline.screen_series()
        pipeline.build_chronology()
        climate = pipeline.correlate_climate()
        pipeline.save_outputs()

        stats = pipeline.results['chronology_stats']
        console.print(
            f"Series: {stats['n_series']}  rbar: {_fmt(stats['rbar'])}  "
            f"EPS: {_fmt(stats['eps'])}  SNR: {_fmt(stats['snr'], '.2f')}"
        )

        table = Table(title="Strongest Drought-Index Correlations", show_header=True, header_style="bold cyan")
        table.add_column("Source", style="cyan")
        table.add_column("Chronology")
        table.add_column("Variable")
        table.add_column("Lag", justify="right")
        table.add_column("r", justify="right", style="green")
        table.add_column("p-value", justify="right", style="dim")

        if not climate.empty:
            top = climate.loc[climate['r'].abs().sort_values(ascending=False).index].head(10)
            for _, row in top.iterrows():
                table.add_row(
                    row['source'], row['chronology'], row['variable'], str(row['lag']),
                    _fmt(row['r']), _fmt(row['p_value'], '.4f')
                )

        console.print(table)

    except Exception as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {str(e)}")
        logger.exception("Chronology failed")
        raise click.Abort()


@cli.command()
@config_option
@click.option('--plots/--no-plots', default=True, help='Write one release plot per series')
def releases(config, plots):
    """
    Detect growth releases in the unfiltered ring-width table

    Example:
        dendroclim releases --no-plots
    """
    console.print(Panel.fit(
        "[bold cyan]dendroclim - Growth Releases[/bold cyan]",
        border_style="cyan"
    ))

    try:
        pipeline = _init_pipeline(config)
        pipeline.load_data()
        result = pipeline.detect_releases()
        pipeline.save_outputs()

        if plots:
            from dendroclim.report import ReportGenerator
            ReportGenerator(pipeline.config).write_release_plots(
                pipeline.rwl, result, pipeline.results['release_criteria']
            )

        counts = result['counts']
        busy = counts[counts['n_releases'] > 0]

        table = Table(title="Releases by Year", show_header=True, header_style="bold cyan")
        table.add_column("Year", style="cyan")
        table.add_column("Trees", justify="right", style="dim")
        table.add_column("Minor", justify="right", style="yellow")
        table.add_column("Major", justify="right", style="red")
        table.add_column("% releasing", justify="right")

        for year, row in busy.iterrows():
            table.add_row(
                str(year), str(row['n_trees']), str(row['n_minor']), str(row['n_major']),
                _fmt(row['pct_releasing'], '.1f')
            )

        console.print(table)

    except Exception as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {str(e)}")
        logger.exception("Release detection failed")
        raise click.Abort()


@cli.command()
@config_option
def validate(config):
    """
    Validate the input tables without running the analysis

    Example:
        dendroclim validate
    """
    console.print(Panel.fit(
        "[bold cyan]dendroclim - Data Validation[/bold cyan]",
        border_style="cyan"
    ))

    try:
        pipeline = _init_pipeline(config)
        pipeline.load_data(validate=True, raise_on_fail=False)

        summary = pipeline.validator.get_summary()
        table = Table(title="Validation Results", show_header=True, header_style="bold cyan")
        table.add_column("Check", style="cyan")
        table.add_column("Status")
        table.add_column("Errors", justify="right")
        table.add_column("Warnings", justify="right")

        colors = {'pass': 'green', 'warning': 'yellow', 'fail': 'red'}
        for _, row in summary.iterrows():
            color = colors.get(row['status'], 'white')
            table.add_row(
                row['check'], f"[{color}]{row['status']}[/{color}]",
                str(row['n_errors']), str(row['n_warnings'])
            )

        console.print(table)

    except Exception as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {str(e)}")
        logger.exception("Validation failed")
        raise click.Abort()


@cli.command()
@config_option
def status(config):
    """
    Show input files, outputs and configured parameters

    Example:
        dendroclim status
    """
    console.print(Panel.fit(
        "[bold cyan]dendroclim - Status[/bold cyan]",
        border_style="cyan"
    ))

    try:
        pipeline = DendroPipeline(config_path=config)
        cfg = pipeline.config

        console.print("\n[bold]Checking data sources...[/bold]")
        data_dir = cfg.get_path('data.raw_path', 'data/raw')

        inputs = [cfg.get('data.ring_widths'), cfg.get('data.sites')]
        inputs += list((cfg.get('data.drought_indices', {}) or {}).values())

        for file in inputs:
            if not file:
                continue
            file_path = Path(file) if Path(file).is_absolute() else data_dir / file
            if file_path.exists():
                console.print(f"  [green]✓[/green] {file}")
            else:
                console.print(f"  [red]✗[/red] {file} (required)")

        outputs = sorted(pipeline.output_path.glob('*.csv'))
        console.print(f"\n[bold]Outputs:[/bold] {len(outputs)} tables in {pipeline.output_path}")

        table = Table(title="Parameters")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")

        for key in ['correlation.method', 'filtering.min_correlation', 'crossdating.seg_length',
                    'crossdating.pcrit', 'detrending.method', 'releases.backward_window',
                    'releases.forward_window', 'releases.buffer', 'releases.minor_threshold',
                    'releases.major_threshold', 'releases.min_duration']:
            table.add_row(key, str(cfg.get(key)))

        console.print(table)

    except Exception as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {str(e)}")
        logger.exception("Status check failed")
        raise click.Abort()


if __name__ == '__main__':
    cli()
