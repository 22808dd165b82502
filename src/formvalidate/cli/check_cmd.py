"""CLI commands: check a values file against a form, list rule types."""

import json
from pathlib import Path

import click
import yaml

from formvalidate.config import ValidationConfig
from formvalidate.loader import build_validator, load_form
from formvalidate.registry import RuleRegistry, register_builtin_rules
from formvalidate.report import is_report_valid, report_to_dict
from formvalidate.session import FormSession
from formvalidate.types import FormValidateError


def _load_values(path: Path) -> dict:
    try:
        with path.open() as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as e:
        raise click.ClickException(f"YAML parse error in {path}: {e}")

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise click.ClickException(f"{path}: values must be a mapping of field id to value")
    return {str(k): v for k, v in raw.items()}


@click.command()
@click.argument("form_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--values",
    "values_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML mapping of fully-qualified field id to value.",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the report as JSON.")
@click.option(
    "--dev",
    is_flag=True,
    default=False,
    help="Developer mode: include exception details for rules that raise.",
)
def check(form_path: Path, values_path: Path | None, as_json: bool, dev: bool):
    """Validate field values against a YAML form definition."""
    register_builtin_rules()

    config = ValidationConfig.from_env()
    if dev:
        config.developer_mode = True

    values = _load_values(values_path) if values_path is not None else {}

    try:
        form = load_form(form_path)
        session = FormSession(values, config=config)
        validator = build_validator(form, session, config=config)
        report = validator.evaluate()
    except (FormValidateError, ValueError) as e:
        click.echo(click.style(f"Invalid form definition: {e}", fg="red"), err=True)
        raise SystemExit(1)

    valid = is_report_valid(report)

    if as_json:
        click.echo(json.dumps(report_to_dict(report), indent=2))
    else:
        for field_id, error in report.items():
            if error is None:
                click.echo(f"  ✓ {field_id}")
            else:
                click.echo(click.style(f"  ✗ {field_id}: {error.message}", fg="red"))

        failures = sum(1 for error in report.values() if error is not None)
        if valid:
            click.echo(click.style(f"\nAll {len(report)} field(s) are valid.", fg="green", bold=True))
        else:
            click.echo(
                click.style(f"\n{failures} of {len(report)} field(s) invalid.", fg="red", bold=True)
            )

    if not valid:
        raise SystemExit(1)


@click.command("rules")
def rules_cmd():
    """List the rule types available to form definitions."""
    register_builtin_rules()
    for name in RuleRegistry.list_registered():
        click.echo(name)
