"""Main entry point for the pdcli application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import sys
import logging
from typing import Any, Coroutine, Dict, List, Optional

import httpx
import typer
from typing_extensions import Annotated

# --- Core Layer ---
from pdcli.core.command_handler import CommandHandler, EXIT_FAILURE
from pdcli.core.services.attribute_service import AttributeService
from pdcli.core.services.batch_executor import BatchExecutor
from pdcli.core.services.lookup_service import LookupService

# --- Domain Layer ---
from pdcli.domain.errors import ConfigurationError
from pdcli.domain.models.common import Credential

# --- Infrastructure Layer ---
from pdcli.infrastructure.api.client import PagerDutyClient
from pdcli.infrastructure.api.transport import DEFAULT_TIMEOUT_S
from pdcli.infrastructure.cli.display import ConsoleDisplay
from pdcli.infrastructure.cli.progress import RichProgressSink
from pdcli.infrastructure.config.settings import (
    get_api_base_url, get_api_token, get_batch_options, get_config, load_configuration,
)
from pdcli.infrastructure.monitoring.logger_setup import resolve_level, setup_logging

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

def create_dependencies(http_transport: Optional[httpx.AsyncBaseTransport] = None) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root. ``http_transport`` replaces the
    network layer (tests pass an httpx.MockTransport).
    """
    logger.debug("Initializing application dependencies...")
    dependencies: Dict[str, Any] = {}
    base_url = get_api_base_url()

    # 1. Infrastructure adapters
    dependencies['ui'] = ConsoleDisplay()
    dependencies['api_client'] = PagerDutyClient(
        base_url=base_url,
        timeout=float(get_config('batch.request_timeout', DEFAULT_TIMEOUT_S)),
        http_transport=http_transport,
    )
    dependencies['batch_executor'] = BatchExecutor(
        base_url=base_url,
        progress_sink=RichProgressSink() if get_config('ui.progress', True) else None,
        http_transport=http_transport,
    )

    # 2. Core services
    dependencies['lookup_service'] = LookupService(client=dependencies['api_client'])
    dependencies['attribute_service'] = AttributeService(
        executor=dependencies['batch_executor'],
        ui=dependencies['ui'],
    )

    # 3. Command handler
    dependencies['command_handler'] = CommandHandler(
        attribute_service=dependencies['attribute_service'],
        lookup_service=dependencies['lookup_service'],
        ui=dependencies['ui'],
    )
    logger.debug("All dependencies initialized successfully.")
    return dependencies


# Single instances of our services, created on first command
_dependencies: Dict[str, Any] = {}


def get_dependencies() -> Dict[str, Any]:
    if not _dependencies:
        _dependencies.update(create_dependencies())
    return _dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="pdcli",
    help="pdcli: PagerDuty command-line client with rate-limited batch updates.",
    add_completion=False,
)
user_app = typer.Typer(help="Manage PagerDuty users.", no_args_is_help=True)
service_app = typer.Typer(help="Manage PagerDuty services.", no_args_is_help=True)
app.add_typer(user_app, name="user")
app.add_typer(service_app, name="service")


# --- Helpers ---

def run_async(coro: Coroutine[Any, Any, int]) -> int:
    """Runs an async command handler from a sync Typer command and returns its exit code."""
    try:
        return asyncio.run(coro)
    except Exception as e:
        logger.error(f"Error executing async command: {e}", exc_info=True)
        get_dependencies()['ui'].display_error(f"Command execution failed: {e}")
        return EXIT_FAILURE


def resolve_token(token: Optional[str]) -> Credential:
    try:
        return get_api_token(token)
    except ConfigurationError as e:
        get_dependencies()['ui'].display_error(str(e))
        raise typer.Exit(code=EXIT_FAILURE)


# --- Shared Options ---

KeyOption = Annotated[str, typer.Option("--key", "-k", help="Attribute key to set.")]
ValueOption = Annotated[str, typer.Option("--value", "-v", help="Attribute value to set. An empty value clears it.")]
IdsOption = Annotated[
    Optional[List[str]],
    typer.Option("--ids", "-i", help="Select objects with the given ID. Specify multiple times for multiple objects."),
]
TokenOption = Annotated[
    Optional[str],
    typer.Option("--token", "-b", help="PagerDuty API token (defaults to PDCLI_TOKEN or the config file)."),
]
ConcurrencyOption = Annotated[
    Optional[int],
    typer.Option("--concurrency", min=1, help="Maximum number of requests in flight."),
]
MaxAttemptsOption = Annotated[
    Optional[int],
    typer.Option("--max-attempts", min=1, help="Maximum tries per request before giving up."),
]


# --- CLI Commands ---

@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-V", help="Enable debug logging.")] = False,
):
    """PagerDuty command-line client."""
    load_configuration()
    log_level = logging.DEBUG if verbose else resolve_level(get_config('logging.level'))
    setup_logging(
        log_level=log_level,
        log_file=get_config('logging.file'),
        log_format=get_config('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
    )


@user_app.command("set")
def user_set(
    key: KeyOption,
    value: ValueOption,
    emails: Annotated[
        Optional[List[str]],
        typer.Option("--emails", "-e", help="Select users whose emails contain the given text. Repeatable."),
    ] = None,
    exact_emails: Annotated[
        Optional[List[str]],
        typer.Option("--exact-emails", "-E", help="Select a user whose login email is this exact text. Repeatable."),
    ] = None,
    ids: IdsOption = None,
    pipe: Annotated[bool, typer.Option("--pipe", "-p", help="Read user IDs from stdin.")] = False,
    token: TokenOption = None,
    concurrency: ConcurrencyOption = None,
    max_attempts: MaxAttemptsOption = None,
):
    """Set an attribute on PagerDuty users."""
    handler: CommandHandler = get_dependencies()['command_handler']
    credential = resolve_token(token)
    piped_ids = sys.stdin.read() if pipe else None
    options = get_batch_options(concurrency_limit=concurrency, max_attempts=max_attempts)
    exit_code = run_async(handler.handle_user_set(
        key, value, credential,
        emails=emails, exact_emails=exact_emails, ids=ids, piped_ids=piped_ids, options=options,
    ))
    raise typer.Exit(code=exit_code)


@service_app.command("set")
def service_set(
    key: KeyOption,
    value: ValueOption,
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="Select services whose names contain the given text.")] = None,
    ids: IdsOption = None,
    token: TokenOption = None,
    concurrency: ConcurrencyOption = None,
    max_attempts: MaxAttemptsOption = None,
):
    """Set an attribute on PagerDuty services."""
    handler: CommandHandler = get_dependencies()['command_handler']
    credential = resolve_token(token)
    options = get_batch_options(concurrency_limit=concurrency, max_attempts=max_attempts)
    exit_code = run_async(handler.handle_service_set(
        key, value, credential, name=name, ids=ids, options=options,
    ))
    raise typer.Exit(code=exit_code)


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
