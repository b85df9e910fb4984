"""Enqueue a job to a relay queue.

CLI that builds a key=value payload, encrypts it with the endpoint key when
one is configured, creates the queue if needed and sends the job to it.
"""

import click

from job_relay.cipher import CipherCodec
from job_relay.config import EndpointSettings
from job_relay.cli.relay import load_settings, queue_exists
from job_relay.exceptions import ParseFailure
from job_relay.parser import parse
from job_relay.persist_pgmq import PersistPGMQ as QueueRepository
from job_relay.queue_model_dto import JobDTO, MetaDTO


def build_payload(lines: tuple[str, ...], endpoint: EndpointSettings) -> str:
    """Join and check the payload lines, encrypting them for the endpoint.

    Raises:
        ParseFailure: If the lines are not key=value.
    """
    payload = "\n".join(lines)
    parse(payload)
    if endpoint.key is not None:
        return CipherCodec().encrypt(payload, endpoint.key)
    return payload


@click.command()
@click.option(
    "--message",
    type=str,
    required=True,
    multiple=True,
    help="A key=value line of the payload, can be used multiple times",
)
@click.option(
    "--side",
    type=click.Choice(["src", "dst"]),
    default="src",
    show_default=True,
    help="The configured endpoint to enqueue to",
)
@click.option("--queue-name", type=str, required=False, help="Override the endpoint's queue name")
@click.option(
    "--config-file",
    type=click.Path(dir_okay=False),
    required=False,
    help="KEY=value file with RELAY_* settings",
)
def main(message: tuple[str, ...], side: str, queue_name: str | None, config_file: str | None) -> None:
    """Enqueue a key=value job to a relay queue; creates the queue if it does not exist."""
    settings = load_settings(config_file)
    endpoint: EndpointSettings = getattr(settings, side)
    queue_name = queue_name or endpoint.queue
    click.echo(f"queue-name: {queue_name}")

    try:
        payload = build_payload(message, endpoint)
    except ParseFailure as err:
        raise click.ClickException(f"Invalid payload: {err}") from err

    queue_repo = QueueRepository(dsn=endpoint.server)
    try:
        if not queue_exists(queue_repo, queue_name):
            try:
                queue_repo.create_queue(queue_name)
            except Exception as e:
                raise click.ClickException(f"Error creating queue: {e}") from e

        try:
            job = JobDTO(
                payload=payload,
                meta=MetaDTO(queue_name=queue_name, encrypted=endpoint.encrypted),
            )
            message_id = queue_repo.enqueue(job)
            click.echo(f"Message enqueued with ID: {message_id}")
        except Exception as e:
            raise click.ClickException(f"Error: {e}") from e
    finally:
        queue_repo.close()


if __name__ == "__main__":
    main()
