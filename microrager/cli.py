"""
Command-line interface tools for the Microrager service.
"""

import asyncio
import json
from collections.abc import Coroutine
from typing import Any

import httpx
import typer

from .models import Message

DEFAULT_BASE_URL = "http://localhost:8000"

app = typer.Typer(help="Microrager CLI tools")


# MARK: - CLI Entry Points


def cli_post() -> None:
    """Entry point for microrager-post CLI command."""
    typer.run(post)


def cli_list() -> None:
    """Entry point for microrager-list CLI command."""
    typer.run(list_messages)


def cli_vote() -> None:
    """Entry point for microrager-vote CLI command."""
    typer.run(vote)


# MARK: - Commands


@app.command()
def post(
    message: str = typer.Argument(..., help="Today's message"),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Microrager service"
    ),
) -> None:
    """Post today's message to the board."""

    async def _post() -> None:
        async with _client() as client:
            response = await client.post(
                f"{base_url}/messages", json={"message": message}
            )
            _raise_for_envelope(response)
            print(response.json()["message"])

    _run_with_error_handling(_post(), base_url)


@app.command("list")
def list_messages(
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Microrager service"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Show today's board."""

    async def _list() -> None:
        async with _client() as client:
            response = await client.get(f"{base_url}/messages")
            _raise_for_envelope(response)
            result = response.json()

            if json_output:
                print(json.dumps(result, indent=2))
                return

            if not result:
                print("No messages today")
                return

            for raw in result:
                print(_format_message(Message.model_validate(raw)))

    _run_with_error_handling(_list(), base_url)


@app.command()
def vote(
    message_id: str = typer.Argument(..., help="Id of the message to vote on"),
    color: str = typer.Option(..., "--color", "-c", help="Vote label, e.g. rgb(1,2,3)"),
    count: int = typer.Option(1, "--count", "-n", help="Number of votes to add"),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Microrager service"
    ),
) -> None:
    """Vote on a message with a color."""

    async def _vote() -> None:
        async with _client() as client:
            response = await client.patch(
                f"{base_url}/messages",
                json={"votes": [{"id": message_id, "color": color, "count": count}]},
            )
            _raise_for_envelope(response)
            print(response.json()["message"])

    _run_with_error_handling(_vote(), base_url)


# MARK: - Private Helpers


class EnvelopeError(Exception):
    """The service answered with an error envelope."""

    def __init__(self, status_code: int, error: str) -> None:
        super().__init__(error)
        self.status_code = status_code


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient()


def _raise_for_envelope(response: httpx.Response) -> None:
    """Raise EnvelopeError carrying the service's error text, if any."""
    if response.is_success:
        return
    try:
        error = response.json().get("error", "")
    except (json.JSONDecodeError, AttributeError):
        error = ""
    raise EnvelopeError(response.status_code, error or response.reason_phrase)


def _format_message(message: Message) -> str:
    """Format a message with its vote tallies."""
    if not message.votes:
        return f"{message.id}  {message.text}"
    tallies = ", ".join(f"{label}={count}" for label, count in message.votes.items())
    return f"{message.id}  {message.text}  [{tallies}]"


def _run_with_error_handling(coro: Coroutine[Any, Any, Any], base_url: str) -> None:
    """Run an async coroutine with standardized error handling."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        print("\nStopped")
        raise typer.Exit(0)
    except httpx.ConnectError:
        print(f"Error: Could not connect to {base_url}")
        raise typer.Exit(1)
    except EnvelopeError as e:
        print(f"Error: HTTP {e.status_code}: {e}")
        raise typer.Exit(1)
    except Exception as e:
        error_msg = str(e) if str(e) else f"Unknown error of type {type(e).__name__}"
        print(f"Error: {error_msg}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
