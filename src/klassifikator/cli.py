"""Command-line interface for the klassifikator engine."""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from klassifikator.errors import KlassifikatorError

if TYPE_CHECKING:
    from klassifikator.engine import ClassifierEngine
    from klassifikator.evaluation.metrics import EvaluationResult
    from klassifikator.modeling.inference import PredictionResult

app = typer.Typer(
    name="klassifikator",
    help="Train, register, serve and evaluate tabular classifiers.",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration YAML file.",
        exists=True,
        dir_okay=False,
    ),
]
ModelOption = Annotated[
    str | None,
    typer.Option("--model", "-m", help="Model name (default: the active model)."),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Print the result as JSON."),
]


def _start_engine(config: Path | None) -> "ClassifierEngine":
    """Load configuration, set up logging and start the engine."""
    from klassifikator.config import EngineConfig, load_config
    from klassifikator.engine import ClassifierEngine
    from klassifikator.utils.logging import configure_logging

    engine_config = load_config(config) if config is not None else EngineConfig()
    configure_logging(engine_config.logging)
    engine = ClassifierEngine(engine_config)
    engine.start()
    return engine


@contextmanager
def _engine_errors() -> Iterator[None]:
    """Map engine errors to a red message and exit code 1."""
    try:
        yield
    except KlassifikatorError as e:
        console.print(f"[red]Error ({type(e).__name__}): {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


def _print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload))


def _print_prediction(result: "PredictionResult") -> None:
    table = Table(title=f"Prediction ({result.model_name}, {result.algorithm})")
    table.add_column("Class", style="cyan")
    table.add_column("Probability", style="green", justify="right")
    for label, p in result.distribution.items():
        marker = " *" if label == result.prediction else ""
        table.add_row(f"{label}{marker}", f"{p:.4f}")
    console.print(table)
    console.print(
        f"[green]Prediction: {result.prediction} "
        f"(confidence {result.confidence:.4f})[/green]"
    )


def _print_evaluation(result: "EvaluationResult") -> None:
    table = Table(title=f"Evaluation: {result.model_name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Instances", str(result.n_instances))
    table.add_row("Correct", str(result.n_correct))
    table.add_row("Accuracy", f"{result.accuracy:.2f} %")
    table.add_row("Kappa", f"{result.kappa:.4f}")
    table.add_row("Precision (weighted)", f"{result.precision:.4f}")
    table.add_row("Recall (weighted)", f"{result.recall:.4f}")
    table.add_row("F1 (weighted)", f"{result.f1:.4f}")
    console.print(table)
    console.print(result.summary, markup=False, highlight=False)
    console.print(result.class_details, markup=False, highlight=False)
    console.print(result.confusion_matrix, markup=False, highlight=False)


@app.command()
def train(
    data: Annotated[
        Path,
        typer.Argument(help="Training dataset (ARFF or CSV with header).", exists=True, dir_okay=False),
    ],
    name: Annotated[str, typer.Option("--name", "-n", help="Model name to register.")],
    algorithm: Annotated[
        str | None,
        typer.Option("--algorithm", "-a", help="Algorithm id or alias (see 'algorithms')."),
    ] = None,
    class_index: Annotated[
        int | None,
        typer.Option("--class-index", help="0-based class column (default: last column)."),
    ] = None,
    config: ConfigOption = None,
    as_json: JsonOption = False,
) -> None:
    """Train a model on a dataset and register it."""
    with _engine_errors():
        engine = _start_engine(config)
        report = engine.train(data, algorithm, name, class_index)

    if as_json:
        _print_json(report.to_dict())
        return

    table = Table(title=f"Trained model: {report.model_name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Algorithm", report.algorithm)
    table.add_row("Instances", str(report.n_instances))
    table.add_row("Attributes", str(report.n_attributes))
    table.add_row("Training time", f"{report.training_time_ms:.1f} ms")
    table.add_row("CV accuracy", f"{report.evaluation.accuracy:.2f} %")
    table.add_row("CV kappa", f"{report.evaluation.kappa:.4f}")
    console.print(table)
    console.print(report.evaluation.summary, markup=False, highlight=False)


@app.command()
def predict(
    features: Annotated[
        str,
        typer.Argument(help='Feature map as JSON, e.g. \'{"age": 26, "income": 31000}\'.'),
    ],
    model: ModelOption = None,
    config: ConfigOption = None,
    as_json: JsonOption = False,
) -> None:
    """Predict the class of one feature map."""
    try:
        payload = json.loads(features)
    except json.JSONDecodeError as e:
        console.print(f"[red]Error: features are not valid JSON: {e}[/red]")
        raise typer.Exit(code=1) from e

    with _engine_errors():
        engine = _start_engine(config)
        result = engine.predict(payload, model)

    if as_json:
        _print_json(result.to_dict())
    else:
        _print_prediction(result)


@app.command("predict-batch")
def predict_batch(
    items: Annotated[
        Path,
        typer.Argument(help="JSON file holding a list of feature maps.", exists=True, dir_okay=False),
    ],
    model: ModelOption = None,
    config: ConfigOption = None,
    as_json: JsonOption = False,
) -> None:
    """Predict every feature map in a JSON file; malformed items are skipped."""
    try:
        payload = json.loads(items.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Error reading {items}: {e}[/red]")
        raise typer.Exit(code=1) from e
    if not isinstance(payload, list):
        console.print("[red]Error: batch file must contain a JSON list[/red]")
        raise typer.Exit(code=1)

    with _engine_errors():
        engine = _start_engine(config)
        results = engine.predict_batch(payload, model)

    if as_json:
        _print_json([r.to_dict() for r in results])
        return

    table = Table(title=f"Batch predictions ({len(results)}/{len(payload)})")
    table.add_column("#", justify="right")
    table.add_column("Prediction", style="cyan")
    table.add_column("Confidence", style="green", justify="right")
    table.add_column("Model")
    for i, result in enumerate(results, start=1):
        table.add_row(str(i), result.prediction, f"{result.confidence:.4f}", result.model_name)
    console.print(table)
    skipped = len(payload) - len(results)
    if skipped:
        console.print(f"[yellow]Skipped {skipped} malformed item(s)[/yellow]")


@app.command()
def evaluate(
    name: Annotated[str, typer.Argument(help="Model to evaluate.")],
    data: Annotated[
        Path,
        typer.Argument(help="Labeled test dataset.", exists=True, dir_okay=False),
    ],
    config: ConfigOption = None,
    as_json: JsonOption = False,
) -> None:
    """Evaluate a model on a labeled test dataset."""
    with _engine_errors():
        engine = _start_engine(config)
        result = engine.evaluate(name, data)

    if as_json:
        _print_json(result.to_dict())
    else:
        _print_evaluation(result)


@app.command()
def models(
    config: ConfigOption = None,
    as_json: JsonOption = False,
) -> None:
    """List registered models."""
    with _engine_errors():
        engine = _start_engine(config)
        infos = engine.list_models()

    if as_json:
        _print_json([info.to_dict() for info in infos])
        return

    table = Table(title="Registered models")
    table.add_column("Name", style="cyan")
    table.add_column("Algorithm")
    table.add_column("Type")
    table.add_column("Class")
    table.add_column("Attributes", justify="right")
    table.add_column("Trained at")
    table.add_column("Active", justify="center")
    for info in infos:
        table.add_row(
            info.name,
            info.algorithm,
            info.model_type,
            info.class_attribute,
            str(len(info.attributes)),
            info.trained_at.isoformat(timespec="seconds"),
            "✓" if info.active else "",
        )
    console.print(table)


@app.command()
def info(
    name: Annotated[str, typer.Argument(help="Model name.")],
    config: ConfigOption = None,
    as_json: JsonOption = False,
) -> None:
    """Show the schema and metadata of one model."""
    with _engine_errors():
        engine = _start_engine(config)
        model_info = engine.get_model_info(name)

    if as_json:
        _print_json(model_info.to_dict())
        return

    console.print(
        f"[blue]{model_info.name}[/blue] ({model_info.algorithm}, {model_info.model_type})"
        f"{' [green]active[/green]' if model_info.active else ''}"
    )
    table = Table(title=f"Attributes (class: {model_info.class_attribute})")
    table.add_column("#", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Kind")
    table.add_column("Domain")
    for attribute in model_info.attributes:
        table.add_row(
            str(attribute["index"]),
            attribute["name"],
            attribute["kind"],
            ", ".join(attribute.get("domain", [])),
        )
    console.print(table)


@app.command()
def activate(
    name: Annotated[str, typer.Argument(help="Model to make active.")],
    config: ConfigOption = None,
) -> None:
    """Make a registered model the default for predictions."""
    with _engine_errors():
        engine = _start_engine(config)
        engine.activate(name)
    console.print(f"[green]Active model: {name}[/green]")


@app.command()
def delete(
    name: Annotated[str, typer.Argument(help="Model to delete.")],
    config: ConfigOption = None,
) -> None:
    """Delete a model and its stored artifacts."""
    with _engine_errors():
        engine = _start_engine(config)
        engine.delete(name)
    console.print(f"[green]Deleted model: {name}[/green]")


@app.command()
def load(
    name: Annotated[str, typer.Argument(help="Model to reload from storage.")],
    config: ConfigOption = None,
) -> None:
    """Reload a model from its stored artifacts."""
    with _engine_errors():
        engine = _start_engine(config)
        model_info = engine.load_model(name)
    console.print(f"[green]Loaded model: {model_info.name} ({model_info.algorithm})[/green]")


@app.command()
def algorithms(as_json: JsonOption = False) -> None:
    """List supported algorithms and their aliases."""
    from klassifikator.modeling.models import list_algorithms

    catalog = list_algorithms()
    if as_json:
        _print_json([a.to_dict() for a in catalog])
        return

    table = Table(title="Algorithms")
    table.add_column("Id", style="cyan")
    table.add_column("Family")
    table.add_column("Aliases")
    table.add_column("Description")
    for algorithm in catalog:
        table.add_row(
            algorithm.id,
            algorithm.family,
            ", ".join(algorithm.aliases),
            algorithm.description,
        )
    console.print(table)


@app.command()
def status(
    config: ConfigOption = None,
    as_json: JsonOption = False,
) -> None:
    """Show registry status."""
    with _engine_errors():
        engine = _start_engine(config)
        summary = engine.status()

    if as_json:
        _print_json(summary)
        return

    table = Table(title="Engine status")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Models", str(summary["n_models"]))
    table.add_row("Active model", summary["active_model"] or "-")
    table.add_row("Models directory", summary["models_dir"])
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from klassifikator import __version__

    console.print(f"klassifikator version {__version__}")


if __name__ == "__main__":
    app()
