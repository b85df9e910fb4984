"""Manage a relay queue.

CLI that creates, inspects, destroys or purges the source or destination
queue named in the relay settings.
"""

import click
from icecream import ic

from job_relay.cli.relay import load_settings
from job_relay.persist_pgmq import PersistPGMQ as QueueRepository

ACTIONS = ("create", "status", "destroy", "purge")


@click.command()
@click.option(
    "--side",
    type=click.Choice(["src", "dst"]),
    default="src",
    show_default=True,
    help="The configured endpoint whose queue to manage",
)
@click.option("--action", type=str, required=True, help=f"One of: {', '.join(ACTIONS)}")
@click.option(
    "--config-file",
    type=click.Path(dir_okay=False),
    required=False,
    help="KEY=value file with RELAY_* settings",
)
def main(side: str, action: str, config_file: str | None) -> bool | dict | int | None:
    """Perform an action on the configured queue (create, status, destroy, purge)."""
    endpoint = getattr(load_settings(config_file), side)
    queue_name = endpoint.queue
    click.echo(f"Queue {queue_name} {action}")

    queue_repo = QueueRepository(dsn=endpoint.server)
    try:
        match action:
            case "create":
                queue_repo.create_queue(queue_name)
                click.echo(f"Queue {queue_name} created")
                return None
            case "status":
                metrics = queue_repo.metrics(queue_name)
                ic(metrics)
                return metrics
            case "destroy":
                queue_repo.destroy_queue(queue_name)
                click.echo(f"Queue {queue_name} destroyed")
                return True
            case "purge":
                purged_count = queue_repo.purge_queue(queue_name)
                click.echo(f"Queue {queue_name} purged ({purged_count} messages)")
                return purged_count
            case _:
                raise click.ClickException(
                    f"Invalid action: {action}. Valid actions are: {', '.join(ACTIONS)}"
                )
    finally:
        queue_repo.close()


if __name__ == "__main__":
    main()
