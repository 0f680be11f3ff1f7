"""CLI entry point for api-test-orchestrator."""

from pathlib import Path

import click
import yaml
from pydantic import ValidationError

from api_test_orchestrator.config import GeneratorConfig
from api_test_orchestrator.errors import FatalRunError
from api_test_orchestrator.generator.code import assemble, render_module_footer, render_module_header
from api_test_orchestrator.generator.validator import validate_python
from api_test_orchestrator.log import setup_logging
from api_test_orchestrator.parser.document import ApiDocument
from api_test_orchestrator.pipeline import plan, render_fallback_suite, run_pipeline


def _load_document(doc_path: Path) -> ApiDocument:
    click.echo(f"Parsing {doc_path}...")
    try:
        return ApiDocument.from_file(doc_path)
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise click.ClickException(f"cannot parse {doc_path}: {e}") from e


def _write_module(output: Path, title: str, blocks: list[str]) -> None:
    content = assemble(render_module_header(title), blocks, render_module_footer())
    errors = validate_python({output.with_suffix(".py").name: content})
    if errors:
        for fname, err in errors.items():
            click.echo(f"  Validation error: {fname}: {err}", err=True)
        raise click.ClickException("generated module is not valid Python")
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding="utf-8")
    click.echo(f"Tests saved to {output}")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option("--log-file", type=click.Path(path_type=Path), default=None, help="Also log to this file.")
def main(verbose: bool, log_file: Path | None):
    """API Test Orchestrator — generate pytest suites from OpenAPI documents."""
    setup_logging(verbose=verbose, log_file=log_file)


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file for the generated pytest module.")
@click.option("--model", default=None, help="LLM model to use.")
@click.option("--retries", type=int, default=None, help="Generation attempts per endpoint.")
@click.option("--backoff-ms", type=int, default=None, help="Initial retry backoff in milliseconds.")
@click.option("--threads", type=int, default=None, help="Worker pool size.")
@click.option("--timeout-ms", type=int, default=None, help="Timeout of a single LLM call.")
@click.option("--fallback/--no-fallback", default=None, help="Use template tests when generation fails.")
def run(
    doc_path: Path,
    output: Path,
    model: str | None,
    retries: int | None,
    backoff_ms: int | None,
    threads: int | None,
    timeout_ms: int | None,
    fallback: bool | None,
):
    """Full pipeline: analyze doc -> schedule -> generate tests."""
    overrides = {
        "model": model,
        "max_retries": retries,
        "initial_backoff_ms": backoff_ms,
        "thread_pool_size": threads,
        "timeout_ms": timeout_ms,
        "use_fallback_on_error": fallback,
    }
    try:
        config = GeneratorConfig(
            input_path=doc_path,
            output_path=output,
            **{k: v for k, v in overrides.items() if v is not None},
        )
    except ValidationError as e:
        raise click.UsageError(str(e)) from e

    document = _load_document(doc_path)
    click.echo(f"Generating tests (model: {config.model}, threads: {config.thread_pool_size})...")
    try:
        report = run_pipeline(config, document=document)
    except FatalRunError as e:
        click.echo(f"Run aborted: {e}", err=True)
        click.echo(f"Processed: {e.processed}, failed: {e.failed}. No output written.", err=True)
        raise SystemExit(1) from e

    _write_module(output, f"Generated API tests for {doc_path.name}", report.blocks)
    click.echo(
        f"Processed: {report.processed}, succeeded: {report.succeeded}, "
        f"failed: {report.failed} (fallbacks: {report.fallbacks}) in {report.duration:.2f}s"
    )


@main.command("plan")
@click.argument("doc_path", type=click.Path(exists=True, path_type=Path))
def plan_cmd(doc_path: Path):
    """Show the dispatch order with priorities and advisory dependencies."""
    document = _load_document(doc_path)
    schedule = plan(document)
    click.echo(f"Found {len(schedule.order)} endpoints.")
    for index, endpoint in enumerate(schedule.order, start=1):
        dep = schedule.dependencies[endpoint.key]
        click.echo(
            f"{index:3d}. [P{dep.priority}] {endpoint.method.value:7s} {endpoint.path} "
            f"(complexity {endpoint.complexity_score}, {endpoint.complexity_level.value})"
        )
        for path, method in dep.dependencies:
            click.echo(f"       after {method} {path}")


@main.command("fallback")
@click.argument("doc_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file for the generated pytest module.")
def fallback_cmd(doc_path: Path, output: Path):
    """Write template-only tests without calling the LLM (smoke test)."""
    document = _load_document(doc_path)
    blocks = render_fallback_suite(document)
    click.echo(f"Rendered {len(blocks)} fallback tests.")
    _write_module(output, f"Fallback API tests for {doc_path.name}", blocks)
