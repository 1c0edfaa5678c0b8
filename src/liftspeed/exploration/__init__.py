"""
Exploratory data analysis: tabular summaries, plots and console output.
"""

from liftspeed.exploration.plots import (
    generate_eda_plots,
    plot_boxplot_by,
    plot_histogram,
    plot_locations,
    plot_scatter,
)
from liftspeed.exploration.reporter import ExplorationReporter
from liftspeed.exploration.summary import (
    count_levels,
    missingness,
    summarize_columns,
    target_correlations,
)

__all__ = [
    "ExplorationReporter",
    "count_levels",
    "generate_eda_plots",
    "missingness",
    "plot_boxplot_by",
    "plot_histogram",
    "plot_locations",
    "plot_scatter",
    "summarize_columns",
    "target_correlations",
]
