"""CLI tool for submitting documents to the extraction service.

Usage:
    dnav-submit report.json --url http://localhost:8000
    dnav-submit report.json --mode local --json
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click
import httpx


def _format_table(candidates: list[dict[str, Any]]) -> str:
    """Format candidates as a terminal table."""
    if not candidates:
        return "No decision candidates found."

    lines = [
        "Page  Strength  Category            Title",
        "----  --------  --------            -----",
    ]
    for c in candidates:
        page = str(c["evidence"]["page"])
        title = c["title"]
        if len(title) > 60:
            title = title[:57] + "..."
        lines.append(f"{page:<6}{c['strength']:<10}{c['category']:<20}{title}")
    return "\n".join(lines)


@click.command()
@click.argument("request_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--url",
    default="http://localhost:8000",
    help="Service URL (default: http://localhost:8000)",
)
@click.option(
    "--mode",
    type=click.Choice(["local", "extract", "refine"]),
    default=None,
    help="Override the request's extraction mode",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output raw JSON instead of formatted text",
)
def main(request_file: Path, url: str, mode: str | None, json_output: bool) -> None:
    """Submit a request file to the extraction service.

    REQUEST_FILE: JSON request body in either accepted shape.
    """
    try:
        payload = json.loads(request_file.read_text(encoding="utf-8"))
        if mode:
            payload.setdefault("options", {})["mode"] = mode

        response = httpx.post(f"{url}/decision-extract", json=payload, timeout=120)
        response.raise_for_status()
        data = response.json()

        if json_output:
            click.echo(json.dumps(data, indent=2))
        else:
            click.echo(_format_table(data.get("candidates", [])))
            for warning in data.get("meta", {}).get("warnings") or []:
                click.echo(f"Warning: {warning}", err=True)

    except httpx.ConnectError:
        click.echo(f"Error: Could not connect to service at {url}", err=True)
        sys.exit(1)
    except httpx.TimeoutException:
        click.echo(f"Error: Request to {url} timed out", err=True)
        sys.exit(1)
    except httpx.HTTPStatusError as e:
        click.echo(
            f"Error: Service returned {e.response.status_code}: {e.response.text}",
            err=True,
        )
        sys.exit(1)
    except json.JSONDecodeError:
        click.echo("Error: Invalid JSON in request file or response", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
