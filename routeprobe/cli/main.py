#!/usr/bin/env python3
"""Main CLI entry point for Route Probe using Typer.

Loads a single application route in headless Chromium and prints a
diagnostic report. The exit code is 0 only when the status is below 400 and
no console errors or network failures were recorded.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from playwright.async_api import Error as PlaywrightError
from typing_extensions import Annotated

from .config import load_settings, print_configuration
from ..capture.page_session import DiagnosticSession
from ..capture.report import ExitCode
from ..errors import ConfigurationError
from ..models.capture import ProbeOptions


app = typer.Typer(
    name="routeprobe",
    help="Route Probe - test an application route in a headless browser",
    add_completion=False,
)


def configure_logging(verbose: bool) -> None:
    """Log to stderr so stdout carries only the report."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def run(
    route: Annotated[
        Optional[str],
        typer.Argument(help="Route to test (e.g. /dashboard, /api/users)")
    ] = None,

    # Identity
    user_id: Annotated[
        Optional[str],
        typer.Option("--user-id", "--user", help="Test as specific user ID or username")
    ] = None,
    auth_key: Annotated[
        Optional[str],
        typer.Option("--auth-key", help="Pre-computed impersonation key")
    ] = None,
    base_url: Annotated[
        Optional[str],
        typer.Option("--base-url", help="Application base URL")
    ] = None,

    # Display options
    no_body: Annotated[bool, typer.Option("--no-body", help="Suppress response body")] = False,
    follow_redirects: Annotated[
        bool, typer.Option("--follow-redirects", help="Follow redirects and show chain")
    ] = False,
    headers: Annotated[bool, typer.Option("--headers", help="Display response headers")] = False,
    console_log: Annotated[
        bool, typer.Option("--console-log", "--console", help="Display all console output")
    ] = False,
    xhr_dump: Annotated[bool, typer.Option("--xhr-dump", help="Full XHR/fetch details")] = False,
    xhr_list: Annotated[bool, typer.Option("--xhr-list", help="Simple XHR URL list")] = False,
    input_elements: Annotated[bool, typer.Option("--input-elements", help="List form inputs")] = False,
    cookies: Annotated[bool, typer.Option("--cookies", help="Display cookies")] = False,
    storage: Annotated[bool, typer.Option("--storage", help="Display localStorage/sessionStorage")] = False,
    full: Annotated[bool, typer.Option("--full", help="Enable all display options")] = False,

    # Request
    post: Annotated[
        Optional[str],
        typer.Option("--post", help="Send POST request (JSON is sent as JSON, other text form-encoded)")
    ] = None,

    # Diagnostics
    wait_for: Annotated[Optional[str], typer.Option("--wait-for", help="Wait for element")] = None,
    expect_element: Annotated[
        Optional[str], typer.Option("--expect-element", help="Verify element exists (fails if not found)")
    ] = None,
    dump_dimensions: Annotated[
        Optional[str], typer.Option("--dump-dimensions", help="Add layout dimensions to matching elements")
    ] = None,
    dump_element: Annotated[Optional[str], typer.Option("--dump-element", help="Extract element HTML")] = None,
    eval_code: Annotated[Optional[str], typer.Option("--eval", help="Execute JavaScript")] = None,

    timeout: Annotated[
        Optional[int], typer.Option("--timeout", help="Navigation timeout in ms (default: 30000)")
    ] = None,
    screenshot_path: Annotated[
        Optional[Path], typer.Option("--screenshot-path", help="Save screenshot")
    ] = None,
    screenshot_width: Annotated[
        Optional[str], typer.Option("--screenshot-width", help="Width (px or: mobile, tablet, desktop)")
    ] = None,

    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging on stderr")] = False,
    print_config: Annotated[
        bool, typer.Option("--print-config", help="Print effective settings and exit")
    ] = False,
):
    """
    Test a route using a headless browser.

    Examples:

        routeprobe /dashboard

        routeprobe /admin --user=1 --auth-key=$KEY

        routeprobe /api/data --xhr-list

        routeprobe /page --screenshot-path=/tmp/shot.png --screenshot-width=mobile

        routeprobe /form --eval="document.querySelector('#submit').click(); await new Promise(r => setTimeout(r, 1000));"
    """
    configure_logging(verbose)

    try:
        settings = load_settings({
            'base_url': base_url,
            'auth_key': auth_key,
        })

        if print_config:
            typer.echo(print_configuration(settings), nl=False)
            raise typer.Exit(code=ExitCode.SUCCESS.value)

        options = ProbeOptions.build(
            route=route,
            user_id=user_id,
            no_body=no_body,
            follow_redirects=follow_redirects,
            headers=headers,
            console_log=console_log,
            xhr_dump=xhr_dump,
            xhr_list=xhr_list,
            input_elements=input_elements,
            cookies=cookies,
            storage=storage,
            full=full,
            post_data=post,
            wait_for=wait_for,
            expect_element=expect_element,
            dump_dimensions=dump_dimensions,
            dump_element=dump_element,
            eval_code=eval_code,
            timeout_ms=timeout if timeout is not None else settings.timeout_ms,
            screenshot_path=screenshot_path,
            screenshot_width=screenshot_width,
        )

    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=ExitCode.FAILURE.value)

    session = DiagnosticSession(options, settings)
    try:
        exit_code = asyncio.run(session.run())
    except PlaywrightError as e:
        # Browser launch or page creation failed before navigation
        typer.echo(f"FAIL {session.url} - {e.message}")
        raise typer.Exit(code=ExitCode.FAILURE.value)

    raise typer.Exit(code=int(exit_code))


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
