"""Command-line interface for the Okta authentication core.

Example:
    >>> # From terminal:
    >>> # oktaauth --version
    >>> # oktaauth config write --org-name acme --api-token 00abc
    >>> # oktaauth config read
    >>> # oktaauth request GET users/me
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Annotated, Any, NoReturn, Optional

import typer

from oktaauth import __version__
from oktaauth.config.path import config_exists, load_config, read_config, write_config
from oktaauth.config.storage import DEFAULT_DB_PATH, SQLiteStorage
from oktaauth.errors import OktaAuthError
from oktaauth.http import new_http_client
from oktaauth.observability import bind_context, configure_logging
from oktaauth.shim import create_shim

ENV_DB_PATH = "OKTAAUTH_DB"

app = typer.Typer(help="Okta authentication core CLI.")

config_app = typer.Typer(help="Read and write the stored Okta configuration.")
app.add_typer(config_app, name="config")

_db_path: Path = Path(DEFAULT_DB_PATH)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


VERSION_OPTION = typer.Option(
    False,
    "--version",
    help="Show oktaauth version and exit.",
    callback=_version_callback,
    is_eager=True,
)


@app.callback()
def cli(
    version: bool = VERSION_OPTION,
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="SQLite file holding the configuration (env: OKTAAUTH_DB)."),
    ] = None,
    log_level: Annotated[
        str, typer.Option("--log-level", help="Log level for diagnostics on stderr.")
    ] = "WARNING",
) -> None:
    """oktaauth CLI entrypoint."""
    global _db_path
    _db_path = db or Path(os.environ.get(ENV_DB_PATH, DEFAULT_DB_PATH))
    configure_logging(log_level=log_level, force=True)


def _fail(exc: OktaAuthError) -> NoReturn:
    typer.echo(f"Error: {exc.message}", err=True)
    raise typer.Exit(code=1)


def _echo_warnings(warnings: list[str]) -> None:
    for warning in warnings:
        typer.echo(f"WARNING: {warning}", err=True)


@config_app.command("read")
def config_read() -> None:
    """Print the stored configuration as JSON."""
    try:
        resp = asyncio.run(read_config(SQLiteStorage(_db_path)))
    except OktaAuthError as exc:
        _fail(exc)
    if resp is None:
        typer.echo("No configuration stored.", err=True)
        raise typer.Exit(code=1)
    _echo_warnings(resp.warnings)
    typer.echo(json.dumps(resp.data, indent=2, sort_keys=True))


@config_app.command("write")
def config_write(
    org_name: Annotated[
        Optional[str], typer.Option("--org-name", help="Okta organization (subdomain).")
    ] = None,
    api_token: Annotated[
        Optional[str], typer.Option("--api-token", help="Okta API token (SSWS).")
    ] = None,
    base_url: Annotated[
        Optional[str], typer.Option("--base-url", help="Base domain, e.g. okta.com.")
    ] = None,
    production: Annotated[
        Optional[bool],
        typer.Option("--production/--preview", help="Deprecated: use --base-url."),
    ] = None,
    bypass_okta_mfa: Annotated[
        Optional[bool],
        typer.Option("--bypass-okta-mfa/--no-bypass-okta-mfa", help="Ignore Okta MFA requests."),
    ] = None,
    token_ttl: Annotated[
        Optional[str], typer.Option("--token-ttl", help="Token TTL, e.g. 3600 or 1h.")
    ] = None,
    token_max_ttl: Annotated[
        Optional[str], typer.Option("--token-max-ttl", help="Token max TTL, e.g. 24h.")
    ] = None,
    token_policies: Annotated[
        Optional[str], typer.Option("--token-policies", help="Comma-separated policies.")
    ] = None,
) -> None:
    """Create or update the stored configuration."""
    data: dict[str, Any] = {
        "org_name": org_name,
        "api_token": api_token,
        "base_url": base_url,
        "production": production,
        "bypass_okta_mfa": bypass_okta_mfa,
        "token_ttl": token_ttl,
        "token_max_ttl": token_max_ttl,
        "token_policies": token_policies,
    }

    async def _write() -> list[str]:
        storage = SQLiteStorage(_db_path)
        create = not await config_exists(storage)
        resp = await write_config(storage, data, create=create)
        return resp.warnings

    try:
        warnings = asyncio.run(_write())
    except OktaAuthError as exc:
        _fail(exc)
    _echo_warnings(warnings)
    typer.echo(f"Configuration written to {_db_path}")


@app.command("request")
def request(
    method: Annotated[str, typer.Argument(help="HTTP method, e.g. GET.")],
    path: Annotated[str, typer.Argument(help="API path, e.g. users/me or /api/v1/users.")],
    body: Annotated[
        Optional[str], typer.Option("--body", help="JSON request body.")
    ] = None,
) -> None:
    """Send an authorized request using the stored configuration."""
    payload: Any = None
    if body is not None:
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"Invalid JSON body: {exc}") from exc

    async def _send() -> Any:
        cfg = await load_config(SQLiteStorage(_db_path))
        if cfg is None:
            raise typer.BadParameter("No configuration stored; run 'oktaauth config write' first.")
        bind_context(organization=cfg.organization)
        async with new_http_client() as http_client:
            shim = create_shim(cfg, http_client=http_client)
            req = await shim.new_request(method.upper(), path, payload)
            return await shim.dispatch(req)

    try:
        result = asyncio.run(_send())
    except OktaAuthError as exc:
        _fail(exc)
    if result is not None:
        typer.echo(json.dumps(result, indent=2))


def main() -> None:
    """Run the oktaauth CLI."""
    app()


if __name__ == "__main__":
    main()
