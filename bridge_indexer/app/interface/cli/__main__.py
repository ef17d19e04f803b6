import asyncio
import inspect
import json
import logging
from typing import Optional

import typer
from dotenv import load_dotenv
from InquirerPy import inquirer

load_dotenv()

from bridge_indexer.app.config import settings  # noqa: E402

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

from bridge_indexer.app.interface.tasks import TASKS  # noqa: E402

logger = logging.getLogger("bridge_indexer.cli")

app = typer.Typer()
collector_app = typer.Typer(help="cli for collecting token bridge registrations from L1 and L2.")
app.add_typer(collector_app, name="collector")


@collector_app.command("collect")
def collect(
    force_l1_start_block: Optional[int] = typer.Option(
        None, "--force-l1-start-block", help="Backfill: start L1 from this block and exit when caught up."
    ),
    force_l2_start_block: Optional[int] = typer.Option(
        None, "--force-l2-start-block", help="Backfill: start L2 from this block and exit when caught up."
    ),
) -> None:
    try:
        asyncio.run(
            TASKS["collector__collect_task"](
                force_l1_start_block=force_l1_start_block,
                force_l2_start_block=force_l2_start_block,
            )
        )
    except Exception:
        logger.exception("Collector stopped on a fatal error")
        raise typer.Exit(code=1)


@collector_app.command("dry-run")
def dry_run(
    chain: str = typer.Option(..., "--chain", help="l1 or l2"),
    from_block: int = typer.Option(..., "--from-block", help="From block (inclusive)."),
    to_block: int = typer.Option(..., "--to-block", help="To block (inclusive)."),
) -> None:
    rows = asyncio.run(
        TASKS["collector__dry_run_task"](chain=chain, from_block=from_block, to_block=to_block)
    )
    typer.echo(json.dumps(rows, indent=2))


@collector_app.command("run")
def run() -> None:
    task_name = inquirer.select(
        message="Select task:",
        choices=list(TASKS.keys()),
        pointer="❯",
        instruction="Use ↑/↓ to move, Enter to select",
    ).execute()

    task = TASKS[task_name]
    params = inspect.signature(task).parameters
    kwargs: dict[str, object] = {}

    if "chain" in params:
        kwargs["chain"] = inquirer.select(
            message="Chain:",
            choices=["l1", "l2"],
        ).execute()
    if "from_block" in params:
        kwargs["from_block"] = int(inquirer.text(message="From block (inclusive):").execute())
    if "to_block" in params:
        kwargs["to_block"] = int(inquirer.text(message="To block (inclusive):").execute())

    for name in ("force_l1_start_block", "force_l2_start_block"):
        if name in params:
            value = inquirer.text(
                message=f"{name} (optional, empty = none):",
                default="",
            ).execute()
            kwargs[name] = int(value) if value.strip() else None

    result = asyncio.run(task(**kwargs))  # type: ignore
    if result is not None:
        typer.echo(json.dumps(result, indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    LOGO = r"""

      --- Bridge Indexer CLI ---
    """
    typer.echo(LOGO)
    main()
