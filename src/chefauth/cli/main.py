# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
chefauth administration CLI

Commands:
- config: write or read the Chef server host and default policies
- policy / role / search: write, read, list and delete matching rules
- apply: load a whole configuration from a YAML file
- login: try a login with a node name and client key
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import click
import yaml
from pydantic import BaseModel
from rich import box
from rich.console import Console
from rich.table import Table

from chefauth.backend import ChefAuthBackend
from chefauth.config import BackendConfig
from chefauth.exceptions import ChefAuthError
from chefauth.registry import ChefPolicy, ChefSearch, GlobalConfig, Role
from chefauth.storage import StorageConfig

console = Console()

T = TypeVar("T")


def _build_backend(storage: StorageConfig) -> ChefAuthBackend:
    return ChefAuthBackend.from_config(BackendConfig(storage=storage, enable_metrics=False))


def _run(ctx: click.Context, operation: Callable[[ChefAuthBackend], Awaitable[T]]) -> T:
    """Run one backend operation, turning chefauth errors into CLI errors."""

    async def runner() -> T:
        async with _build_backend(ctx.obj["storage"]) as backend:
            return await operation(backend)

    try:
        return asyncio.run(runner())
    except ChefAuthError as exc:
        raise click.ClickException(str(exc)) from exc


def _optional(values: tuple[str, ...]) -> Optional[list[str]]:
    """Repeated options left out mean "not supplied", not "empty"."""
    return list(values) if values else None


def _output_json(data: object) -> None:
    """Print data as JSON to stdout."""
    click.echo(json.dumps(data, indent=2, default=str))


def _show_record(title: str, record: Optional[BaseModel], as_json: bool) -> None:
    if record is None:
        raise click.ClickException(f"{title} not found")
    data = record.model_dump()
    if as_json:
        _output_json(data)
        return
    table = Table(title=title, box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for field, value in data.items():
        if isinstance(value, (list, tuple)):
            value = ", ".join(value) or "-"
        table.add_row(field, str(value))
    console.print(table)


def _show_names(title: str, names: set[str], as_json: bool) -> None:
    if as_json:
        _output_json(sorted(names))
        return
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Name", style="cyan")
    for name in sorted(names):
        table.add_row(name)
    console.print(table)


@click.group()
@click.option(
    "--backend", type=click.Choice(["redis", "memory"]), default="redis",
    envvar="CHEFAUTH_BACKEND", show_default=True, help="Storage backend.",
)
@click.option("--redis-host", default="localhost", envvar="CHEFAUTH_REDIS_HOST", show_default=True)
@click.option("--redis-port", type=int, default=6379, envvar="CHEFAUTH_REDIS_PORT", show_default=True)
@click.option("--redis-db", type=int, default=0, envvar="CHEFAUTH_REDIS_DB", show_default=True)
@click.option("--redis-password", default=None, envvar="CHEFAUTH_REDIS_PASSWORD")
@click.option("--redis-ssl", is_flag=True, default=False, envvar="CHEFAUTH_REDIS_SSL")
@click.option("--namespace", default="chefauth", envvar="CHEFAUTH_NAMESPACE", show_default=True)
@click.pass_context
def cli(
    ctx: click.Context,
    backend: str,
    redis_host: str,
    redis_port: int,
    redis_db: int,
    redis_password: Optional[str],
    redis_ssl: bool,
    namespace: str,
):
    """Administer Chef node authentication.

    Manage the Chef server settings and the rules mapping Chef policies,
    roles and saved searches onto access policies.
    """
    ctx.ensure_object(dict)
    ctx.obj["storage"] = StorageConfig(
        backend=backend,
        namespace=namespace,
        redis_host=redis_host,
        redis_port=redis_port,
        redis_db=redis_db,
        redis_password=redis_password,
        redis_ssl=redis_ssl,
    )


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------

@cli.group()
def config():
    """Chef server host and default policies."""


@config.command("write")
@click.option("--host", required=True, help="Chef server host, host:port, or organization URL.")
@click.option("--default-policy", "default_policies", multiple=True,
              help="Policy granted on every successful login (repeatable).")
@click.pass_context
def config_write(ctx: click.Context, host: str, default_policies: tuple[str, ...]):
    """Write the global configuration."""
    result = _run(ctx, lambda b: b.write_config(host, list(default_policies)))
    console.print(f"[green]Configured[/green] Chef server {result.host}")


@config.command("read")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_read(ctx: click.Context, as_json: bool):
    """Show the global configuration."""
    result = _run(ctx, lambda b: b.read_config())
    _show_record("config", result, as_json)


# ---------------------------------------------------------------------------
# policy / role / search
# ---------------------------------------------------------------------------

_lease_options = [
    click.option("--ttl", default=None, help="Token TTL (seconds or duration like 1h)."),
    click.option("--max-ttl", default=None, help="Token max TTL."),
    click.option("--period", default=None, help="Token period; overrides ttl and max-ttl."),
]
_operation_option = click.option(
    "--create/--update", "create", default=None,
    help="Force the operation; by default an existing record is updated.",
)


def _with_options(options: list) -> Callable:
    def decorator(func: Callable) -> Callable:
        for option in reversed(options):
            func = option(func)
        return func
    return decorator


def _operation(create: Optional[bool]) -> Optional[str]:
    if create is None:
        return None
    return "create" if create else "update"


def _add_common_commands(group: click.Group, kind: str, plural: str) -> None:
    """Attach read/list/delete commands for one record kind."""

    @group.command("read")
    @click.argument("name")
    @click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
    @click.pass_context
    def read(ctx: click.Context, name: str, as_json: bool):
        record = _run(ctx, lambda b: getattr(b, f"read_{kind}")(name))
        _show_record(f"{kind} {name}", record, as_json)

    @group.command("list")
    @click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
    @click.pass_context
    def list_(ctx: click.Context, as_json: bool):
        names = _run(ctx, lambda b: getattr(b, f"list_{plural}")())
        _show_names(f"{kind} records", names, as_json)

    @group.command("delete")
    @click.argument("name")
    @click.pass_context
    def delete(ctx: click.Context, name: str):
        deleted = _run(ctx, lambda b: getattr(b, f"delete_{kind}")(name))
        if deleted:
            console.print(f"[green]Deleted[/green] {kind} {name}")
        else:
            console.print(f"[yellow]No {kind} named {name}[/yellow]")


@cli.group()
def policy():
    """Rules matched against a node's Chef policy name."""


@policy.command("write")
@click.argument("name")
@click.option("--policy", "policies", multiple=True, help="Policy to grant (repeatable).")
@_with_options(_lease_options)
@_operation_option
@click.pass_context
def policy_write(ctx, name, policies, ttl, max_ttl, period, create):
    """Create or update the Chef policy NAME."""
    record = _run(ctx, lambda b: b.write_policy(
        name, _operation(create),
        policies=_optional(policies), ttl=ttl, max_ttl=max_ttl, period=period,
    ))
    console.print(f"[green]Saved[/green] policy {record.name}")


_add_common_commands(policy, "policy", "policies")


@cli.group()
def role():
    """Rules matched by Chef policy name or run-list roles."""


@role.command("write")
@click.argument("name")
@click.option("--policy", "policies", multiple=True, help="Policy to grant (repeatable).")
@click.option("--chef-policy-name", "chef_policy_names", multiple=True,
              help="Chef policy name that matches this role (repeatable).")
@click.option("--chef-role-name", "chef_role_names", multiple=True,
              help="Chef run-list role that matches this role (repeatable).")
@_with_options(_lease_options)
@_operation_option
@click.pass_context
def role_write(ctx, name, policies, chef_policy_names, chef_role_names, ttl, max_ttl, period, create):
    """Create or update the role NAME."""
    record = _run(ctx, lambda b: b.write_role(
        name, _operation(create),
        policies=_optional(policies),
        chef_policy_names=_optional(chef_policy_names),
        chef_role_names=_optional(chef_role_names),
        ttl=ttl, max_ttl=max_ttl, period=period,
    ))
    console.print(f"[green]Saved[/green] role {record.name}")


_add_common_commands(role, "role", "roles")


@cli.group()
def search():
    """Saved Chef searches granting extra policies."""


@search.command("write")
@click.argument("name")
@click.option("--query", "search_query", default=None, help="Chef node search query.")
@click.option("--allowed-staleness", default=None,
              help="How long a result may be reused (0 disables caching).")
@click.option("--policy", "policies", multiple=True, help="Policy to grant (repeatable).")
@_operation_option
@click.pass_context
def search_write(ctx, name, search_query, allowed_staleness, policies, create):
    """Create or update the saved search NAME."""
    record = _run(ctx, lambda b: b.write_search(
        name, _operation(create),
        search_query=search_query,
        allowed_staleness=allowed_staleness,
        policies=_optional(policies),
    ))
    console.print(f"[green]Saved[/green] search {record.name}")


_add_common_commands(search, "search", "searches")


# ---------------------------------------------------------------------------
# apply / login
# ---------------------------------------------------------------------------

_APPLY_RECORDS = {"policies": ChefPolicy, "roles": Role, "searches": ChefSearch}


def _check_fields(path: Path, where: str, fields: dict[str, Any], allowed: set[str]) -> None:
    unknown = sorted(str(key) for key in fields if key not in allowed)
    if unknown:
        raise click.ClickException(f"{path}: {where}: unknown field(s) {', '.join(unknown)}")


def load_apply_file(path: Path) -> dict[str, Any]:
    """Read and shape-check an apply file.

    Every record is checked before anything is written, so a typo or a
    stray key such as ``operation`` or ``name`` fails the whole file.
    """
    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise click.ClickException(f"{path}: expected a mapping at the top level")
    _check_fields(path, "top level", data, {"config", *_APPLY_RECORDS})
    for section in ("config", *_APPLY_RECORDS):
        if not isinstance(data.get(section) or {}, dict):
            raise click.ClickException(f"{path}: '{section}' must be a mapping")

    _check_fields(path, "config", data.get("config") or {}, set(GlobalConfig.model_fields))
    for section, model in _APPLY_RECORDS.items():
        allowed = set(model.model_fields) - {"name"}
        for name, fields in (data.get(section) or {}).items():
            if not isinstance(fields or {}, dict):
                raise click.ClickException(f"{path}: {section}.{name} must be a mapping")
            _check_fields(path, f"{section}.{name}", fields or {}, allowed)
    return data


async def apply_configuration(backend: ChefAuthBackend, data: dict[str, Any]) -> dict[str, int]:
    """Write everything in ``data``; returns how many records of each kind."""
    counts = {"config": 0, "policies": 0, "roles": 0, "searches": 0}
    if data.get("config"):
        conf = data["config"]
        await backend.write_config(conf.get("host"), conf.get("default_policies"))
        counts["config"] = 1
    for name, fields in (data.get("policies") or {}).items():
        await backend.write_policy(str(name), **(fields or {}))
        counts["policies"] += 1
    for name, fields in (data.get("roles") or {}).items():
        await backend.write_role(str(name), **(fields or {}))
        counts["roles"] += 1
    for name, fields in (data.get("searches") or {}).items():
        await backend.write_search(str(name), **(fields or {}))
        counts["searches"] += 1
    return counts


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def apply(ctx: click.Context, path: Path):
    """Load config, policies, roles and searches from the YAML file PATH.

    \b
    config:
      host: https://chef.example.com/organizations/ops
      default_policies: [base]
    policies:
      web: {policies: [web-secrets], ttl: 1h}
    roles:
      db: {policies: [db-secrets], chef_role_names: [postgres], period: 24h}
    searches:
      prod: {search_query: "chef_environment:prod", allowed_staleness: 5m, policies: [prod]}
    """
    data = load_apply_file(path)
    counts = _run(ctx, lambda b: apply_configuration(b, data))
    table = Table(title=f"Applied {path.name}", box=box.ROUNDED)
    table.add_column("Kind", style="cyan")
    table.add_column("Written", justify="right")
    for kind, count in counts.items():
        table.add_row(kind, str(count))
    console.print(table)


@cli.command()
@click.argument("node_name")
@click.option("--key-file", required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="The node's client key, often /etc/chef/client.pem.")
@click.pass_context
def login(ctx: click.Context, node_name: str, key_file: Path):
    """Log in as NODE_NAME and print the resulting grant."""
    private_key = key_file.read_text()
    decision = _run(ctx, lambda b: b.login(node_name, private_key))
    _output_json(decision.model_dump(exclude={"internal_data"}))


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
