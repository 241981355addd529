from __future__ import annotations

import json
import logging
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from planning_intelligence.core.decompose.suggest_decompositions import suggest_decompositions
from planning_intelligence.core.errors import PlanConfigError, PlanError, TaskLoadError
from planning_intelligence.core.graph.build_graph import build_dependency_graph
from planning_intelligence.core.health.plan_health import calculate_plan_health
from planning_intelligence.core.health.weights_config import WeightsConfigError, load_and_merge
from planning_intelligence.core.io.load_tasks import load_tasks
from planning_intelligence.core.model import Task
from planning_intelligence.core.report import build_plan_report, to_dict
from planning_intelligence.core.risk.analyze_risks import FactorIdSequence, analyze_risks
from planning_intelligence.core.schedule.optimize_schedule import optimize_schedule
from planning_intelligence.core.validate.validate_tasks import parse_tasks

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()

FORMATS = ("text", "json")


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log analysis details to stderr"),
) -> None:
    """Task dependency analysis and scheduling heuristics."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
            force=True,
        )


@app.command("graph")
def graph_cmd(
    path: str = typer.Argument(..., help="Path to a task file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Build the dependency graph: depths, critical path, parallel groups, cycles."""
    _check_format(format, "graph")
    tasks = _load_or_exit(path, format, "graph")
    graph = build_dependency_graph(tasks)

    if format == "json":
        _emit_json("graph", tasks, to_dict(graph))
        return

    typer.echo(
        f"Graph: {len(graph.nodes)} nodes, {len(graph.edges)} edges, max depth {graph.max_depth}"
    )
    typer.echo("Critical path: " + (" -> ".join(graph.critical_path) or "(none)"))
    if graph.has_cycles:
        typer.echo("Cycles: " + ", ".join(graph.cycle_nodes))
    else:
        typer.echo("Cycles: none")

    table = Table(title="Nodes")
    for col in ("Task", "Priority", "Depth", "In", "Out"):
        table.add_column(col)
    for n in graph.nodes:
        table.add_row(n.id, n.priority, str(n.depth), str(n.in_degree), str(n.out_degree))
    console.print(table)

    for i, group in enumerate(graph.parallel_groups, start=1):
        typer.echo(f"Parallel group {i}: {', '.join(group)}")


@app.command("risks")
def risks_cmd(
    path: str = typer.Argument(..., help="Path to a task file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Analyze risk factors, bottlenecks and recommendations."""
    _check_format(format, "risks")
    tasks = _load_or_exit(path, format, "risks")
    analysis = analyze_risks(tasks, ids=FactorIdSequence())

    if format == "json":
        _emit_json("risks", tasks, to_dict(analysis))
        return

    typer.echo(f"Risk: {analysis.overall_risk} (score {analysis.risk_score})")
    if analysis.factors:
        table = Table(title="Risk factors")
        for col in ("Id", "Severity", "Category", "Score", "Title"):
            table.add_column(col)
        for f in analysis.factors:
            table.add_row(f.id, f.severity, f.category, f"{f.risk_score:.2f}", f.title)
        console.print(table)
    for b in analysis.bottlenecks:
        typer.echo(f"Bottleneck: {b.task_id} ({b.dependent_count} dependents)")
    for rec in analysis.recommendations:
        typer.echo(f"- {rec}")


@app.command("decompose")
def decompose_cmd(
    path: str = typer.Argument(..., help="Path to a task file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Suggest subtasks for oversized or under-specified tasks."""
    _check_format(format, "decompose")
    tasks = _load_or_exit(path, format, "decompose")
    suggestions = suggest_decompositions(tasks)

    if format == "json":
        _emit_json("decompose", tasks, to_dict(suggestions))
        return

    if not suggestions:
        typer.echo("OK: no decompositions suggested")
        return
    for s in suggestions:
        typer.echo(f"{s.task_id}: {s.reason}")
        for sub in s.suggested_subtasks:
            typer.echo(f"  - [{sub.priority}] {sub.title} ({sub.estimated_minutes:g} min)")


@app.command("schedule")
def schedule_cmd(
    path: str = typer.Argument(..., help="Path to a task file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Estimate parallelized completion time and propose reorderings."""
    _check_format(format, "schedule")
    tasks = _load_or_exit(path, format, "schedule")
    opt = optimize_schedule(tasks)

    if format == "json":
        _emit_json("schedule", tasks, to_dict(opt))
        return

    typer.echo(
        f"Original: {opt.original_estimate.hours:g}h ({opt.original_estimate.days:g}d)"
    )
    typer.echo(
        f"Optimized: {opt.optimized_estimate.hours:g}h ({opt.optimized_estimate.days:g}d)"
    )
    typer.echo(f"Savings: {opt.savings}%")
    for r in opt.reordering_suggestions:
        typer.echo(f"Move {r.task_id} to position {r.suggested_position}: {r.reason}")
    for p in opt.parallelization_opportunities:
        typer.echo(f"Parallel: {', '.join(p.tasks)} saves {p.savings_minutes:g} min")


@app.command("health")
def health_cmd(
    path: str = typer.Argument(..., help="Path to a task file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    weights_file: Optional[str] = typer.Option(
        None, "--weights-file", help="Optional YAML file overriding health factor weights"
    ),
) -> None:
    """Score plan health (0-100) and grade it A-F."""
    _check_format(format, "health")
    tasks = _load_or_exit(path, format, "health")
    weights = _weights_or_exit(weights_file, format, "health")
    health = calculate_plan_health(tasks, weights=weights)

    if format == "json":
        _emit_json("health", tasks, to_dict(health))
        return

    typer.echo(f"Health: {health.score}/100 (grade {health.grade})")
    table = Table(title="Health factors")
    for col in ("Factor", "Score", "Weight", "Details"):
        table.add_column(col)
    for f in health.factors:
        table.add_row(f.name, str(f.score), f"{f.weight:g}", f.details)
    console.print(table)


@app.command("report")
def report_cmd(
    path: str = typer.Argument(..., help="Path to a task file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    weights_file: Optional[str] = typer.Option(
        None, "--weights-file", help="Optional YAML file overriding health factor weights"
    ),
) -> None:
    """Run every analysis and print a combined summary."""
    _check_format(format, "report")
    tasks = _load_or_exit(path, format, "report")
    weights = _weights_or_exit(weights_file, format, "report")
    report = build_plan_report(tasks, ids=FactorIdSequence(), weights=weights)

    if format == "json":
        _emit_json("report", tasks, to_dict(report))
        return

    typer.echo(f"Tasks: {report.task_count}")
    typer.echo(f"Health: {report.health.score}/100 (grade {report.health.grade})")
    typer.echo(f"Risk: {report.risks.overall_risk} (score {report.risks.risk_score})")
    typer.echo(
        f"Schedule: {report.schedule.original_estimate.hours:g}h -> "
        f"{report.schedule.optimized_estimate.hours:g}h (savings {report.schedule.savings}%)"
    )
    typer.echo("Critical path: " + (" -> ".join(report.graph.critical_path) or "(none)"))
    typer.echo(f"Decompositions suggested: {len(report.decompositions)}")
    for rec in report.risks.recommendations:
        typer.echo(f"- {rec}")


def _check_format(format: str, command: str) -> None:
    if format in FORMATS:
        return
    err = PlanConfigError(
        code=f"E_{command.upper()}_UNKNOWN_FORMAT",
        message=f"unknown format: {format} (choose one of: {', '.join(FORMATS)})",
        file=None,
        path="format",
    )
    _print_errors([err])
    raise typer.Exit(code=2)


def _load_or_exit(path: str, format: str, command: str) -> list[Task]:
    try:
        doc = load_tasks(path)
    except TaskLoadError as e:
        if format == "json":
            _emit_errors_json(command, [e], exit_code=1)
        _print_errors([e])
        raise typer.Exit(code=1)

    tasks, errors = parse_tasks(doc)
    if errors or tasks is None:
        if format == "json":
            _emit_errors_json(command, list(errors), exit_code=2)
        _print_errors(list(errors))
        raise typer.Exit(code=2)
    return tasks


def _weights_or_exit(weights_file: Optional[str], format: str, command: str) -> dict[str, float]:
    try:
        return load_and_merge(weights_file)
    except FileNotFoundError:
        err = PlanConfigError(
            code="E_WEIGHTS_FILE_NOT_FOUND",
            message=f"weights file not found: {weights_file}",
            file=None,
            path="weights_file",
        )
        exit_code = 1
    except WeightsConfigError as e:
        err = PlanConfigError(
            code="E_WEIGHTS_FILE_INVALID",
            message=str(e),
            file=weights_file,
            path="weights_file",
        )
        exit_code = 2

    if format == "json":
        _emit_errors_json(command, [err], exit_code=exit_code)
    _print_errors([err])
    raise typer.Exit(code=exit_code)


def _emit_json(command: str, tasks: list[Task], result: Any) -> None:
    payload = {
        "tool": "planintel",
        "command": command,
        "ok": True,
        "task_count": len(tasks),
        "result": result,
    }
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))


def _emit_errors_json(command: str, errors: list[PlanError], *, exit_code: int) -> None:
    payload = {
        "tool": "planintel",
        "command": command,
        "ok": False,
        "error_count": len(errors),
        "errors": [e.to_item() for e in sorted(errors, key=PlanError.sort_key)],
    }
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))
    raise typer.Exit(code=exit_code)


def _print_errors(errors: list[PlanError]) -> None:
    for e in sorted(errors, key=PlanError.sort_key):
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="planintel")


if __name__ == "__main__":
    main()
