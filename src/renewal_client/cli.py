"""Command-line interface for calling APIs with self-renewing credentials."""
from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import typer

try:  # pragma: no cover - exercised in runtime environments
    from rich import box
    from rich.console import Console
    from rich.table import Table
except ImportError as exc:  # pragma: no cover - optional dependency guard
    raise RuntimeError(
        "The CLI requires Rich for table rendering. Install the CLI extras via "
        "'pip install renewal-client[cli]' to enable this command."
    ) from exc

from .client import RenewalClient
from .config import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, ClientConfig
from .exceptions import AuthenticationError, MalformedCredential, RenewalError, RequestError
from .expiry import classify_token, decode_expiry, token_remaining_seconds
from .store import CredentialPair, FileCredentialStore

app = typer.Typer(help="Call credential-protected APIs with automatic token renewal.", no_args_is_help=True)

token_app = typer.Typer(help="Stored credential operations.")
app.add_typer(token_app, name="token")

DEFAULT_CREDENTIALS_FILE = Path("~/.config/renewal-client/credentials.json")


def _announce_reauthentication(url: str) -> None:
    typer.secho(
        f"Session expired. Sign in again at {url} and store the new tokens with 'token set'.",
        err=True,
        fg=typer.colors.RED,
    )


def _build_client(
    base_url: str,
    credentials_file: Path,
    verify_ssl: bool,
    cert_path: Path | None,
    timeout: float,
    refresh_path: str,
    login_url: str,
) -> RenewalClient:
    verify_target: bool | str
    if cert_path:
        expanded_cert = cert_path.expanduser()
        if not expanded_cert.exists():
            raise typer.BadParameter("Certificate file not found for --cert option.")
        if not verify_ssl:
            raise typer.BadParameter("Cannot combine --cert with --no-verify.")
        verify_target = str(expanded_cert)
    else:
        verify_target = verify_ssl

    config = ClientConfig(
        base_url=base_url.rstrip("/"),
        verify_ssl=verify_target,
        timeout=timeout,
        refresh_path=refresh_path,
        login_url=login_url,
        redirect_delay=0.0,
    )
    return RenewalClient(
        base_url=base_url,
        store=FileCredentialStore(credentials_file),
        navigator=_announce_reauthentication,
        config=config,
    )


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


console = Console(force_terminal=False, color_system=None)


def _handle_request_error(exc: AuthenticationError | RequestError) -> None:
    message = f"Request failed (status {exc.status_code}): {exc}"
    if exc.details:
        message += f"\nDetails: {exc.details}"
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _handle_renewal_error(client: RenewalClient, exc: RenewalError) -> None:
    timer = client.escalator.redirect_timer
    if timer is not None:
        timer.join(5.0)
    typer.secho(f"Credential renewal failed: {exc}", err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _env_verify_default() -> bool:
    # Accept common truthy/falsey representations (1/0, true/false, yes/no).
    env_verify = os.getenv("RENEWAL_VERIFY_SSL")
    if env_verify is None:
        return True
    return env_verify.strip().lower() not in {"0", "false", "no", "off"}


def _shared_options() -> dict[str, Any]:  # pragma: no cover - helper indirection
    return {
        "base_url": typer.Option(
            ..., "--base-url", envvar="RENEWAL_BASE_URL", help="API base URL."
        ),
        "credentials_file": typer.Option(
            DEFAULT_CREDENTIALS_FILE,
            "--credentials-file",
            envvar="RENEWAL_CREDENTIALS_FILE",
            help="JSON file holding the access and renewal tokens.",
        ),
        "verify_ssl": typer.Option(
            _env_verify_default(),
            "--verify/--no-verify",
            envvar="RENEWAL_VERIFY_SSL",
            help="Enable or disable TLS certificate verification.",
            show_default=True,
        ),
        "cert_path": typer.Option(
            None,
            "--cert",
            envvar="RENEWAL_CA_CERT",
            help="Path to a custom CA bundle for TLS verification.",
        ),
        "timeout": typer.Option(30.0, help="Request timeout (seconds).", show_default=True),
        "refresh_path": typer.Option(
            "/api/auth/refresh",
            "--refresh-path",
            envvar="RENEWAL_REFRESH_PATH",
            help="Path of the token renewal endpoint.",
            show_default=True,
        ),
        "login_url": typer.Option(
            "/login",
            "--login-url",
            envvar="RENEWAL_LOGIN_URL",
            help="Where to sign in again when renewal fails.",
            show_default=True,
        ),
        "output_json": typer.Option(
            False,
            "--json",
            "-j",
            help="Return raw JSON instead of rendering a table.",
        ),
    }


_SHARED_OPTIONS = _shared_options()


@app.command("get")
def get_resource(
    path: str = typer.Argument(..., help="Path relative to the base URL."),
    base_url: str = _SHARED_OPTIONS["base_url"],
    credentials_file: Path = _SHARED_OPTIONS["credentials_file"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    refresh_path: str = _SHARED_OPTIONS["refresh_path"],
    login_url: str = _SHARED_OPTIONS["login_url"],
) -> None:
    """GET a resource, renewing the access token when the server asks for it."""

    with _build_client(
        base_url=base_url,
        credentials_file=credentials_file,
        verify_ssl=verify_ssl,
        cert_path=cert_path,
        timeout=timeout,
        refresh_path=refresh_path,
        login_url=login_url,
    ) as client:
        try:
            payload = client.get(path)
        except RenewalError as exc:
            _handle_renewal_error(client, exc)
            return
        except (AuthenticationError, RequestError) as exc:
            _handle_request_error(exc)
            return
        # A warning header on the response starts a background renewal.
        client.coordinator.join(timeout)

    _echo_json(payload)


def _describe_token(token: str | None) -> dict[str, Any]:
    expires_at: str | None = None
    if token:
        try:
            expires_at = datetime.fromtimestamp(decode_expiry(token), tz=timezone.utc).isoformat()
        except MalformedCredential:
            expires_at = None
    return {
        "present": bool(token),
        "expiresAt": expires_at,
        "remainingSeconds": int(token_remaining_seconds(token)),
        "status": classify_token(token).value,
    }


@token_app.command("status")
def token_status(
    credentials_file: Path = _SHARED_OPTIONS["credentials_file"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
) -> None:
    """Show whether the stored access token is healthy, expiring or expired."""

    store = FileCredentialStore(credentials_file)
    summary = _describe_token(store.get(ACCESS_TOKEN_KEY))
    summary["renewalTokenPresent"] = store.get(REFRESH_TOKEN_KEY) is not None
    if output_json:
        _echo_json(summary)
        return

    table = Table(title="Stored credentials", box=box.SIMPLE, header_style="bold cyan")
    table.add_column("Field")
    table.add_column("Value")
    for key, value in summary.items():
        table.add_row(key, "" if value is None else str(value))
    console.print(table)


@token_app.command("set")
def token_set(
    access_token: str = typer.Option(..., "--access-token", help="Access token to store."),
    refresh_token: str = typer.Option(..., "--refresh-token", help="Renewal token to store."),
    credentials_file: Path = _SHARED_OPTIONS["credentials_file"],
) -> None:
    """Store a token pair obtained by signing in."""

    if not access_token.strip() or not refresh_token.strip():
        raise typer.BadParameter("Both --access-token and --refresh-token must be non-empty.")
    store = FileCredentialStore(credentials_file)
    store.set_pair(CredentialPair(access_token=access_token.strip(), refresh_token=refresh_token.strip()))
    typer.echo(f"Stored credentials in {store.path}")


@token_app.command("refresh")
def token_refresh(
    base_url: str = _SHARED_OPTIONS["base_url"],
    credentials_file: Path = _SHARED_OPTIONS["credentials_file"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    refresh_path: str = _SHARED_OPTIONS["refresh_path"],
    login_url: str = _SHARED_OPTIONS["login_url"],
) -> None:
    """Renew the stored access token now."""

    with _build_client(
        base_url=base_url,
        credentials_file=credentials_file,
        verify_ssl=verify_ssl,
        cert_path=cert_path,
        timeout=timeout,
        refresh_path=refresh_path,
        login_url=login_url,
    ) as client:
        try:
            client.coordinator.renew_now()
        except RenewalError as exc:
            _handle_renewal_error(client, exc)
            return

    typer.echo("Access token renewed.")


@token_app.command("clear")
def token_clear(
    credentials_file: Path = _SHARED_OPTIONS["credentials_file"],
) -> None:
    """Remove the stored tokens."""

    store = FileCredentialStore(credentials_file)
    store.clear()
    typer.echo(f"Cleared credentials in {store.path}")


def main() -> None:  # pragma: no cover - console entrypoint
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
