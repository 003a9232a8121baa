"""Report generation module

Creates plotly figures and a single HTML report from the analysis tables:
one release-detection figure per series, the chronology against the
drought indices, the segment crossdating matrix, release counts and the
site map.
"""

import re
import pandas as pd
import numpy as np
from pathlib import Path
from typing import Dict, List, Optional
from datetime import datetime
from dendroclim.utils.logging_config import get_logger, log_section
from dendroclim.utils.config import ConfigLoader
from dendroclim.analysis.climate import add_seasonal_means

import plotly.graph_objects as go
from plotly.subplots import make_subplots


logger = get_logger(__name__)


COLORS = {
    'primary': '#5b3a1e',       # bark brown
    'secondary': '#8c6239',
    'smooth': '#c0392b',
    'depth': '#bdbdbd',
    'minor': '#f39c12',
    'major': '#c0392b',
    'threshold': '#7f8c8d',
    'indices': ['#1f77b4', '#2ca02c', '#9467bd', '#17becf']
}


def _safe_name(name: str) -> str:
    """File-system safe version of a series name"""
    return re.sub(r'[^A-Za-z0-9_.-]+', '_', str(name))


def pick_index_variable(table: pd.DataFrame, preferred: Optional[str] = None) -> Optional[str]:
    """Variable of a drought-index table to plot against the chronology"""
    columns = [str(c) for c in table.columns]
    for candidate in (preferred, 'annual'):
        if candidate and candidate in columns:
            return candidate
    return columns[0] if columns else None


class ReportGenerator:
    """
    Generate plotly figures and the HTML report

    Writes to:
    - results/releases/<series>.html (one per series)
    - results/chronology.html
    - results/report.html
    """

    def __init__(self, config: Optional[ConfigLoader] = None, results_path: Optional[Path] = None):
        """Initialize report generator"""
        self.config = config if config else ConfigLoader()
        self.results_path = Path(results_path) if results_path else self.config.get_path('results.path', 'results')
        self.index_variable = self.config.get('results.index_variable')
        self.results_path.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Figures

    def release_figure(
        self,
        name: str,
        widths: pd.Series,
        pgc: pd.Series,
        flags: pd.Series,
        criteria: Dict
    ) -> go.Figure:
        """Ring widths and percent growth change of one series"""
        fig = make_subplots(specs=[[{'secondary_y': True}]])

        fig.add_trace(
            go.Scatter(
                x=widths.index, y=widths.values, mode='lines', name='Ring width (mm)',
                line={'color': COLORS['primary'], 'width': 1.5}
            ),
            secondary_y=False
        )
        fig.add_trace(
            go.Scatter(
                x=pgc.index, y=100 * pgc.values, mode='lines', name='Growth change (%)',
                line={'color': COLORS['secondary'], 'width': 1, 'dash': 'dot'}
            ),
            secondary_y=True
        )

        for label, key in (('minor', 'minor_threshold'), ('major', 'major_threshold')):
            fig.add_trace(
                go.Scatter(
                    x=[pgc.index.min(), pgc.index.max()], y=[100 * criteria[key]] * 2,
                    mode='lines', name=f'{label.capitalize()} threshold ({criteria[key]:.0%})',
                    line={'color': COLORS[label], 'width': 1, 'dash': 'dash'}
                ),
                secondary_y=True
            )

        for code, label in ((1, 'minor'), (2, 'major')):
            years = flags.index[flags == code]
            if len(years):
                fig.add_trace(
                    go.Scatter(
                        x=years, y=100 * pgc.loc[years].values, mode='markers',
                        name=f'{label.capitalize()} release',
                        marker={'color': COLORS[label], 'size': 10, 'symbol': 'triangle-up'}
                    ),
                    secondary_y=True
                )

        fig.update_layout(
            title=f'<b>{name}</b>: growth releases '
                  f'({criteria["backward_window"]}/{criteria["forward_window"]}-year windows)',
            template='plotly_white',
            height=420,
            legend={'orientation': 'h', 'y': -0.2}
        )
        fig.update_xaxes(title_text='Year')
        fig.update_yaxes(title_text='Ring width (mm)', secondary_y=False)
        fig.update_yaxes(title_text='Growth change (%)', secondary_y=True)

        return fig

    def chronology_figure(self, chronology: pd.DataFrame, indices: Dict[str, pd.DataFrame]) -> go.Figure:
        """Chronology, sample depth and drought indices on a shared year axis"""
        fig = make_subplots(
            rows=3, cols=1, shared_xaxes=True, vertical_spacing=0.06,
            row_heights=[0.45, 0.15, 0.40],
            subplot_titles=('Ring-width index chronology', 'Sample depth', 'Drought indices')
        )

        fig.add_trace(
            go.Scatter(
                x=chronology.index, y=chronology['std'], mode='lines', name='Chronology (std)',
                line={'color': COLORS['primary'], 'width': 1}
            ),
            row=1, col=1
        )
        if 'smooth' in chronology.columns:
            fig.add_trace(
                go.Scatter(
                    x=chronology.index, y=chronology['smooth'], mode='lines', name='Smoothed',
                    line={'color': COLORS['smooth'], 'width': 2.5}
                ),
                row=1, col=1
            )
        fig.add_hline(y=1.0, line_dash='dot', line_color=COLORS['threshold'], row=1, col=1)

        fig.add_trace(
            go.Bar(
                x=chronology.index, y=chronology['samp_depth'], name='Sample depth',
                marker_color=COLORS['depth'], showlegend=False
            ),
            row=2, col=1
        )

        for i, (source, table) in enumerate(indices.items()):
            table = add_seasonal_means(table)
            variable = pick_index_variable(table, self.index_variable)
            if variable is None:
                continue
            column = next(c for c in table.columns if str(c) == variable)
            fig.add_trace(
                go.Scatter(
                    x=table.index, y=table[column], mode='lines', name=f'{source} ({variable})',
                    line={'color': COLORS['indices'][i % len(COLORS['indices'])], 'width': 1.5}
                ),
                row=3, col=1
            )
        fig.add_hline(y=0.0, line_dash='dot', line_color=COLORS['threshold'], row=3, col=1)

        fig.update_layout(
            title={
                'text': f'<b>Chronology and drought indices</b><br>'
                        f'<sup>Generated: {datetime.now().strftime("%Y-%m-%d %H:%M")}</sup>',
                'x': 0.5,
                'xanchor': 'center'
            },
            template='plotly_white',
            height=850,
            legend={'orientation': 'h', 'yanchor': 'bottom', 'y': 1.02, 'xanchor': 'center', 'x': 0.5}
        )
        fig.update_xaxes(title_text='Year', row=3, col=1)

        return fig

    def segment_figure(self, segments: pd.DataFrame, critical_r: float) -> go.Figure:
        """Heatmap of segment correlations; flagged segments marked"""
        fig = go.Figure()
        if segments.empty:
            fig.update_layout(title='Segment crossdating: no segments tested', template='plotly_white')
            return fig

        wide = segments.pivot(index='series', columns='seg_start', values='r')
        labels = [f"{s}-{s + int(segments['seg_end'].iloc[0] - segments['seg_start'].iloc[0])}" for s in wide.columns]

        fig.add_trace(
            go.Heatmap(
                z=wide.values, x=labels, y=wide.index.astype(str),
                colorscale='RdYlBu', zmin=-1, zmax=1, colorbar={'title': 'r'}
            )
        )

        flagged = segments[segments['flagged']]
        if len(flagged):
            fig.add_trace(
                go.Scatter(
                    x=[labels[list(wide.columns).index(s)] for s in flagged['seg_start']],
                    y=flagged['series'].astype(str),
                    mode='markers', name=f'r < {critical_r:.3f}',
                    marker={'symbol': 'x', 'color': 'black', 'size': 9}
                )
            )

        fig.update_layout(
            title=f'<b>Segment crossdating</b> (critical r = {critical_r:.3f})',
            template='plotly_white',
            height=max(350, 22 * len(wide) + 150)
        )
        return fig

    def release_count_figure(self, counts: pd.DataFrame) -> go.Figure:
        """Stacked bars of trees releasing per year"""
        fig = go.Figure()
        fig.add_trace(go.Bar(x=counts.index, y=counts['n_minor'], name='Minor', marker_color=COLORS['minor']))
        fig.add_trace(go.Bar(x=counts.index, y=counts['n_major'], name='Major', marker_color=COLORS['major']))
        fig.add_trace(
            go.Scatter(
                x=counts.index, y=counts['n_trees'], mode='lines', name='Trees measured',
                line={'color': COLORS['threshold'], 'dash': 'dot'}
            )
        )
        fig.update_layout(
            barmode='stack', title='<b>Growth releases by year</b>', template='plotly_white',
            xaxis_title='Year', yaxis_title='Trees', height=400
        )
        return fig

    def site_map_figure(self, sites: pd.DataFrame) -> go.Figure:
        """Sampling sites on a map, colored by taxon"""
        fig = go.Figure()
        for i, (taxon, group) in enumerate(sites.groupby('taxon')):
            fig.add_trace(
                go.Scattergeo(
                    lat=group['latitude'], lon=group['longitude'], text=group['site_id'],
                    mode='markers', name=str(taxon),
                    marker={'size': 9, 'color': COLORS['indices'][i % len(COLORS['indices'])]}
                )
            )
        fig.update_geos(fitbounds='locations', showcountries=True)
        fig.update_layout(title='<b>Sampling sites</b>', template='plotly_white', height=450)
        return fig

    # ------------------------------------------------------------------
    # Output

    def write_release_plots(self, rwl: pd.DataFrame, releases: Dict[str, pd.DataFrame], criteria: Dict) -> List[Path]:
        """
        Write one release figure per series

        Returns:
            List of written file paths
        """
        out_dir = self.results_path / 'releases'
        out_dir.mkdir(parents=True, exist_ok=True)

        paths = []
        for name in rwl.columns:
            span = rwl[name].dropna()
            if span.empty:
                continue
            years = slice(span.index.min(), span.index.max())
            fig = self.release_figure(
                name, rwl.loc[years, name], releases['pgc'].loc[years, name],
                releases['flags'].loc[years, name], criteria
            )
            path = out_dir / f'{_safe_name(name)}.html'
            fig.write_html(str(path), include_plotlyjs='cdn', full_html=True)
            paths.append(path)

        logger.info(f"Saved {len(paths)} release plots to: {out_dir}")
        return paths

    def write_chronology_plot(self, chronology: pd.DataFrame, indices: Dict[str, pd.DataFrame]) -> Path:
        """Write the chronology-vs-index figure"""
        path = self.results_path / 'chronology.html'
        self.chronology_figure(chronology, indices).write_html(str(path), include_plotlyjs=True, full_html=True)
        logger.info(f"Chronology plot saved to: {path}")
        return path

    def write_report(self, results: Dict) -> Path:
        """
        Assemble figures and summary tables into one HTML document

        Args:
            results: Pipeline results (see DendroPipeline.run)

        Returns:
            Path to the generated report
        """
        log_section(logger, "REPORT GENERATION")

        figures = []
        if 'chronology' in results:
            figures.append(self.chronology_figure(results['chronology'], results.get('indices', {})))
        if 'segments' in results:
            figures.append(self.segment_figure(results['segments'], results.get('critical_r', np.nan)))
        if 'releases' in results:
            figures.append(self.release_count_figure(results['releases']['counts']))
        if results.get('sites') is not None and len(results['sites']):
            figures.append(self.site_map_figure(results['sites']))

        sections = []
        for i, fig in enumerate(figures):
            sections.append(
                '<div class="chart">' + fig.to_html(full_html=False, include_plotlyjs=(i == 0)) + '</div>'
            )

        tables = [
            ('Chronology statistics', pd.DataFrame([results.get('chronology_stats', {})])),
            ('Interseries correlation', results.get('correlations')),
            ('Removed series', results.get('removed')),
            ('Crossdating flags', results.get('segment_summary')),
            ('Drought index correlation', self._top_climate(results.get('climate'))),
            ('Release events', results['releases']['events'] if 'releases' in results else None),
            ('Pointer years', self._pointer_years(results.get('pointer_years')))
        ]
        for title, table in tables:
            if table is None or len(table) == 0:
                continue
            sections.append(
                f'<h2>{title}</h2>' + table.to_html(float_format=lambda v: f'{v:.3f}', na_rep='', border=0)
            )

        html = (
            '<!DOCTYPE html>\n<html lang="en">\n<head>\n<meta charset="UTF-8">\n'
            '<title>Tree-ring chronology report</title>\n'
            '<style>\n'
            'body { font-family: Arial, sans-serif; margin: 2em; color: #222; }\n'
            'h1 { color: ' + COLORS['primary'] + '; }\n'
            'table { border-collapse: collapse; font-size: 0.85em; margin-bottom: 2em; }\n'
            'th, td { padding: 4px 10px; border-bottom: 1px solid #ddd; text-align: right; }\n'
            '.chart { margin-bottom: 2em; }\n'
            '</style>\n</head>\n<body>\n'
            f'<h1>Tree-ring chronology report</h1>\n<p>Generated: {datetime.now().strftime("%Y-%m-%d %H:%M")}</p>\n'
            + '\n'.join(sections) +
            '\n</body>\n</html>\n'
        )

        path = self.results_path / 'report.html'
        path.write_text(html, encoding='utf-8')
        logger.info(f"Report saved to: {path}")
        return path

    @staticmethod
    def _top_climate(climate: Optional[pd.DataFrame], n: int = 15) -> Optional[pd.DataFrame]:
        """Strongest drought-index correlations"""
        if climate is None or climate.empty:
            return None
        order = climate['r'].abs().sort_values(ascending=False).index
        return climate.loc[order].head(n).reset_index(drop=True)

    @staticmethod
    def _pointer_years(pointer: Optional[pd.DataFrame]) -> Optional[pd.DataFrame]:
        if pointer is None:
            return None
        return pointer[pointer['nature'] != 0]
