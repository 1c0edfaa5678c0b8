"""Command-line interface for the liftspeed analysis."""

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    import pandas as pd

    from liftspeed.config.settings import ProjectConfig

app = typer.Typer(
    name="liftspeed",
    help="Elevator speed modeling on the NYC elevators dataset.",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug log messages."),
    ] = False,
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Emit log messages as JSON lines."),
    ] = False,
) -> None:
    """Elevator speed modeling on the NYC elevators dataset."""
    from liftspeed.utils.logging import configure_logging

    configure_logging("DEBUG" if verbose else "INFO", json_output=json_logs)


def _load_modeling_data(
    pipeline_config: "ProjectConfig", data: Path | None
) -> "pd.DataFrame":
    """
    Cleaned modeling table: an explicit CSV, the cached ETL output, or
    the raw file cleaned on the fly.
    """
    from liftspeed.analysis import prepare_data
    from liftspeed.etl import load_cleaned

    if data is not None:
        console.print(f"[dim]Using specified data: {data}[/dim]")
        return load_cleaned(data)

    cached = pipeline_config.cleaned_data_path
    if cached.exists():
        console.print(f"[dim]Auto-detected data: {cached}[/dim]")
        return load_cleaned(cached)

    console.print("[dim]No cleaned data cached, cleaning raw file[/dim]")
    return prepare_data(pipeline_config)


@app.command()
def etl(
    config: Annotated[
        Path,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration YAML file.",
            exists=True,
            dir_okay=False,
        ),
    ],
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Output path for the cleaned CSV.",
        ),
    ] = None,
) -> None:
    """Clean the raw elevator file and save the modeling table."""
    from pandera.errors import SchemaError, SchemaErrors

    from liftspeed.config.loader import load_config
    from liftspeed.etl import run_etl

    console.print(f"[blue]Loading configuration from {config}[/blue]")
    pipeline_config = load_config(config)
    console.print(f"[dim]Raw data: {pipeline_config.data.resolve()}[/dim]")

    try:
        result = run_etl(pipeline_config, output_path=output)
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e
    except (ValueError, SchemaError, SchemaErrors) as e:
        console.print(f"[red]ETL failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print()
    table = Table(title="ETL Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Raw rows", str(result.n_raw))
    table.add_row("Missing target", str(result.n_missing_target))
    table.add_row("Outside plausible range", str(result.n_out_of_bounds))
    table.add_row("Cleaned rows", str(result.n_cleaned))
    table.add_row("Columns", str(len(result.data.columns)))
    console.print(table)

    if result.output_path:
        console.print(f"\n[green]Saved to: {result.output_path}[/green]")


@app.command()
def validate(
    config: Annotated[
        Path,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration YAML file.",
            exists=True,
            dir_okay=False,
        ),
    ],
) -> None:
    """Validate raw and cleaned data against their schemas."""
    from liftspeed.config.loader import load_config
    from liftspeed.validation import ConsoleReporter, ValidationRunner

    console.print("[blue]Running schema validation...[/blue]")
    pipeline_config = load_config(config)

    results = ValidationRunner(pipeline_config).run()
    ConsoleReporter(console).print_results(results)

    if any(r.schema_valid is False for r in results):
        raise typer.Exit(code=1)


@app.command()
def explore(
    config: Annotated[
        Path,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration YAML file.",
            exists=True,
            dir_okay=False,
        ),
    ],
    data: Annotated[
        Path | None,
        typer.Option(
            "--data",
            "-d",
            help="Cleaned CSV. Uses the ETL output, or cleans the raw file, if not given.",
        ),
    ] = None,
    column: Annotated[
        list[str] | None,
        typer.Option(
            "--column",
            help="Nominal column to count levels of (repeatable).",
        ),
    ] = None,
    top_n: Annotated[
        int,
        typer.Option("--top", help="Levels shown per column."),
    ] = 10,
    no_plots: Annotated[
        bool,
        typer.Option("--no-plots", help="Skip writing plots."),
    ] = False,
) -> None:
    """Summarize the modeling table and write exploratory plots."""
    from liftspeed.config.loader import load_config
    from liftspeed.exploration import (
        ExplorationReporter,
        count_levels,
        generate_eda_plots,
        summarize_columns,
        target_correlations,
    )

    pipeline_config = load_config(config)
    try:
        df = _load_modeling_data(pipeline_config, data)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e

    target = pipeline_config.target
    reporter = ExplorationReporter(console)
    reporter.print_overview(df)
    reporter.print_summary(summarize_columns(df))

    try:
        reporter.print_correlations(target_correlations(df, target), target)
        for col in column or []:
            reporter.print_levels(count_levels(df, col, top_n=top_n))
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e

    if not no_plots:
        output_dir = pipeline_config.plots_dir / "eda"
        paths = generate_eda_plots(df, target, output_dir)
        console.print(f"\n[green]Saved {len(paths)} plots to {output_dir}[/green]")


@app.command()
def fit(
    config: Annotated[
        Path,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration YAML file.",
            exists=True,
            dir_okay=False,
        ),
    ],
    data: Annotated[
        Path | None,
        typer.Option(
            "--data",
            "-d",
            help="Cleaned CSV. Uses the ETL output, or cleans the raw file, if not given.",
        ),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Directory to save the fitted model.",
        ),
    ] = None,
) -> None:
    """Fit the baseline linear model on the training set."""
    import joblib

    from liftspeed.analysis import fit_baseline
    from liftspeed.config.loader import load_config
    from liftspeed.evaluation.metrics import metric_set
    from liftspeed.evaluation.report import print_metrics_table, print_terms_table
    from liftspeed.modeling.data import initial_split

    pipeline_config = load_config(config)
    try:
        df = _load_modeling_data(pipeline_config, data)
        split = initial_split(
            df,
            prop=pipeline_config.split.prop,
            strata=pipeline_config.split.strata,
            breaks=pipeline_config.split.breaks,
            random_state=pipeline_config.random_state,
        )
        fitted, test_metrics = fit_baseline(
            pipeline_config, split, metric_set(*pipeline_config.tuning.metrics)
        )
    except (FileNotFoundError, ValueError, KeyError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"\n[blue]{fitted.workflow.formula}[/blue]")
    console.print(f"[dim]{split!r}[/dim]")
    print_terms_table(fitted.tidy(), console, title="Baseline coefficients")
    print_metrics_table(test_metrics, console, title="Baseline test-set metrics")

    output = output or pipeline_config.models_dir
    output.mkdir(parents=True, exist_ok=True)
    model_path = output / "baseline.joblib"
    joblib.dump(fitted, model_path)
    console.print(f"[green]Saved: {model_path}[/green]")


@app.command()
def resample(
    config: Annotated[
        Path,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration YAML file.",
            exists=True,
            dir_okay=False,
        ),
    ],
    data: Annotated[
        Path | None,
        typer.Option(
            "--data",
            "-d",
            help="Cleaned CSV. Uses the ETL output, or cleans the raw file, if not given.",
        ),
    ] = None,
) -> None:
    """Estimate baseline performance with the recipe across resamples."""
    from liftspeed.config.loader import load_config
    from liftspeed.evaluation.metrics import metric_set
    from liftspeed.evaluation.report import print_metrics_table
    from liftspeed.modeling.data import initial_split
    from liftspeed.modeling.models import get_model_spec
    from liftspeed.modeling.preprocessing import build_recipe
    from liftspeed.modeling.resampling import fit_resamples, resamples_from_config
    from liftspeed.modeling.workflow import Workflow

    pipeline_config = load_config(config)
    try:
        df = _load_modeling_data(pipeline_config, data)
        split = initial_split(
            df,
            prop=pipeline_config.split.prop,
            strata=pipeline_config.split.strata,
            breaks=pipeline_config.split.breaks,
            random_state=pipeline_config.random_state,
        )
        resamples = resamples_from_config(
            split.training(),
            pipeline_config.resampling,
            random_state=pipeline_config.random_state,
        )
        recipe = build_recipe(pipeline_config.target, pipeline_config.preprocessing)
        workflow = (
            Workflow()
            .add_recipe(recipe)
            .add_model(get_model_spec(pipeline_config.models.baseline))
        )
        results = fit_resamples(
            workflow,
            resamples,
            metric_set(*pipeline_config.tuning.metrics),
            n_jobs=pipeline_config.tuning.n_jobs,
        )
    except (FileNotFoundError, ValueError, KeyError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"\n[blue]{recipe!r}[/blue]")
    console.print(f"[dim]{len(resamples)} {resamples.method} resamples[/dim]")
    print_metrics_table(
        results.collect_metrics(), console, title="Resampled baseline metrics"
    )


@app.command()
def tune(
    config: Annotated[
        Path,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration YAML file.",
            exists=True,
            dir_okay=False,
        ),
    ],
    data: Annotated[
        Path | None,
        typer.Option(
            "--data",
            "-d",
            help="Cleaned CSV. Uses the ETL output, or cleans the raw file, if not given.",
        ),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option(
            "--model",
            "-m",
            help="Model to tune (e.g. 'rand_forest'). Tunes all configured models if not given.",
        ),
    ] = None,
    no_mlflow: Annotated[
        bool,
        typer.Option("--no-mlflow", help="Skip MLflow logging."),
    ] = False,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Directory to save tuned models.",
        ),
    ] = None,
) -> None:
    """Tune the configured models and evaluate the best candidates on the test set."""
    import joblib

    from liftspeed.analysis import model_label, model_labels, tune_model
    from liftspeed.config.loader import load_config
    from liftspeed.evaluation.metrics import metric_set
    from liftspeed.evaluation.report import (
        plot_predictions,
        plot_tuning_results,
        print_metrics_table,
        print_residual_summary,
        print_tuning_table,
        save_prediction_table,
    )
    from liftspeed.modeling.data import initial_split
    from liftspeed.modeling.preprocessing import build_recipe
    from liftspeed.modeling.resampling import resamples_from_config

    pipeline_config = load_config(config)
    entries = pipeline_config.models.tuned
    labelled = list(zip(entries, model_labels(entries)))
    if model is not None:
        labelled = [
            (e, label) for e, label in labelled if model in (e.name, model_label(e), label)
        ]
    if not labelled:
        console.print(f"[red]Error: no tuned model configured matching '{model}'[/red]")
        raise typer.Exit(code=1)

    try:
        df = _load_modeling_data(pipeline_config, data)
        split = initial_split(
            df,
            prop=pipeline_config.split.prop,
            strata=pipeline_config.split.strata,
            breaks=pipeline_config.split.breaks,
            random_state=pipeline_config.random_state,
        )
        resamples = resamples_from_config(
            split.training(),
            pipeline_config.resampling,
            random_state=pipeline_config.random_state,
        )
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e

    recipe = build_recipe(pipeline_config.target, pipeline_config.preprocessing)
    metrics = metric_set(*pipeline_config.tuning.metrics)
    select_metric = pipeline_config.tuning.select_metric

    output = output or pipeline_config.models_dir
    output.mkdir(parents=True, exist_ok=True)
    plots_dir = pipeline_config.plots_dir / "tuning"

    experiment = None
    if pipeline_config.mlflow.enabled and not no_mlflow:
        from liftspeed.evaluation.experiment import TuningExperiment

        experiment = TuningExperiment(pipeline_config)

    for entry, label in labelled:
        console.print(f"\n[bold blue]Tuning {label}[/bold blue]")
        try:
            tuned = tune_model(
                entry, recipe, resamples, split, pipeline_config, metrics, label=label
            )
        except (ValueError, KeyError) as e:
            console.print(f"[red]Tuning failed for {label}: {e}[/red]")
            raise typer.Exit(code=1) from e

        console.print(
            f"[dim]{len(tuned.results.grid)} candidates x {len(resamples)} resamples "
            f"in {tuned.results.fit_time_s:.1f}s[/dim]"
        )
        print_tuning_table(
            tuned.results.show_best(select_metric, n=pipeline_config.tuning.n_show),
            console,
            tuned.results.params,
            title=f"{label}: best candidates by {select_metric}",
        )
        print_metrics_table(
            tuned.final.collect_metrics(), console, title=f"{label}: test-set metrics"
        )

        predictions = tuned.final.collect_predictions()
        print_residual_summary(
            predictions, pipeline_config.target, console, title=f"{label}: test-set residuals"
        )
        artifacts = [
            save_prediction_table(predictions, label, output / "predictions"),
            plot_predictions(
                predictions, pipeline_config.target, plots_dir / f"{label}_predictions.png"
            ),
            plot_tuning_results(
                tuned.results.collect_metrics(),
                tuned.results.params,
                plots_dir / f"{label}_grid.png",
            ),
        ]

        model_path = output / f"{label}.joblib"
        joblib.dump(tuned.final.extract_workflow(), model_path)
        console.print(f"[green]Saved: {model_path}[/green]")

        if experiment is not None:
            run_id = experiment.run(
                label, tuned.results, tuned.best, tuned.final, artifacts=artifacts
            )
            console.print(f"[dim]MLflow run: {run_id}[/dim]")


@app.command()
def run(
    config: Annotated[
        Path,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration YAML file.",
            exists=True,
            dir_okay=False,
        ),
    ],
    data: Annotated[
        Path | None,
        typer.Option(
            "--data",
            "-d",
            help="Cleaned CSV. Uses the ETL output, or cleans the raw file, if not given.",
        ),
    ] = None,
    no_tune: Annotated[
        bool,
        typer.Option("--no-tune", help="Skip hyperparameter tuning."),
    ] = False,
) -> None:
    """Run the whole analysis from split to final fit."""
    from liftspeed.analysis import run_analysis
    from liftspeed.config.loader import load_config
    from liftspeed.evaluation.report import print_metrics_table

    pipeline_config = load_config(config)
    try:
        df = _load_modeling_data(pipeline_config, data)
        result = run_analysis(pipeline_config, df, tune=not no_tune)
    except (FileNotFoundError, ValueError, KeyError) as e:
        console.print(f"[red]Analysis failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"\n[dim]{result.split!r}[/dim]")
    print_metrics_table(
        result.baseline_metrics,
        console,
        title=f"Baseline ({result.baseline.workflow.formula}) test-set metrics",
    )
    print_metrics_table(
        result.resampled.collect_metrics(), console, title="Resampled recipe baseline"
    )

    if not result.tuned:
        return

    comparison = result.comparison()
    table = Table(title=f"Tuned models ({result.select_metric})")
    table.add_column("Model", style="cyan")
    table.add_column("Config", style="dim")
    table.add_column("Resampled", style="green")
    table.add_column("Test", style="yellow")
    for _, row in comparison.iterrows():
        table.add_row(row["model"], row["config"], f"{row['cv']:.4f}", f"{row['test']:.4f}")
    console.print(table)

    best = result.best_model
    if best is not None:
        params = ", ".join(
            f"{k}={v:.4g}" if isinstance(v, float) else f"{k}={v}"
            for k, v in best.best.items()
            if k != ".config"
        )
        console.print(f"\n[green]Best model: {best.label} ({params})[/green]")


@app.command()
def version() -> None:
    """Show version information."""
    from liftspeed import __version__

    console.print(f"liftspeed version {__version__}")


if __name__ == "__main__":
    app()
