"""Relay jobs from the source queue to the destination queue.

This module provides a CLI that dequeues jobs from the configured source
queue, runs each one through the job pipeline, and archives or deletes it.
Dropped jobs are acknowledged like forwarded ones and are never requeued.
A job whose relay fails unexpectedly (e.g. the destination server is down) is
left alone, so it becomes visible again once its visibility timeout expires.
"""

import logging
import time
import traceback
from collections import Counter
from typing import Any

import click

from job_relay.config import Settings, get_settings
from job_relay.dispatch import QueueDispatcher
from job_relay.exceptions import ConfigError, InvalidJobError
from job_relay.handlers.relay import RelayHandler
from job_relay.persist_pgmq import PersistPGMQ as QueueRepository
from job_relay.pipeline import Dropped, Forwarded, JobPipeline

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def load_settings(config_file: str | None) -> Settings:
    """Load settings, turning configuration errors into a CLI error."""
    try:
        return get_settings(config_file)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr, at DEBUG when verbose."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


def queue_exists(queue_repo: QueueRepository, queue_name: str) -> bool:
    """Return True if the given queue exists in the repository."""
    return queue_name in queue_repo.list_queues()


def acknowledge(queue_repo: QueueRepository, queue_name: str, msg_id: int, delete_messages: bool) -> None:
    """Remove a finished message from the queue by deleting or archiving it."""
    if delete_messages:
        queue_repo.delete(queue_name, msg_id)
    else:
        queue_repo.archive(queue_name, msg_id)


@click.command()
@click.option(
    "--config-file",
    type=click.Path(dir_okay=False),
    required=False,
    help="KEY=value file with RELAY_* settings, default is the environment and .env",
)
@click.option(
    "--max-messages",
    type=int,
    default=100,
    help="Maximum number of messages to read from the source queue",
)
@click.option("--max-runtime", type=int, default=600, help="Maximum runtime in seconds")
@click.option(
    "--visibility-timeout",
    type=int,
    default=300,
    help="Visibility timeout in seconds for dequeued messages",
)
@click.option(
    "--poll-interval",
    type=float,
    default=1.0,
    help="Seconds to wait when the source queue is empty",
)
@click.option(
    "--delete-messages",
    is_flag=True,
    default=False,
    help="Delete messages after relaying, default is to archive them",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every pipeline decision")
def main(**kwargs: Any) -> None:
    """Relay jobs from the source queue to the destination queue.

    Each job is decrypted with the source key (if any), parsed as key=value
    lines, checked for host_name, matched against the host_name filter (if
    any), encrypted with the destination key (if any) and sent to the
    destination queue. One job is finished before the next is read.

    The visibility timeout should be longer than the time it takes to relay
    one job; a job that is not acknowledged in time is delivered again.
    """
    max_messages = kwargs["max_messages"]
    max_runtime = kwargs["max_runtime"]
    visibility_timeout = kwargs["visibility_timeout"]
    poll_interval = kwargs["poll_interval"]
    delete_messages = kwargs["delete_messages"]
    verbose = kwargs["verbose"]

    configure_logging(verbose)
    settings = load_settings(kwargs["config_file"])
    src_queue = settings.src.queue

    src_repo = QueueRepository(dsn=settings.src.server, verbose=verbose)
    dst_repo = None
    try:
        dst_repo = QueueRepository(dsn=settings.dst.server, verbose=verbose)
        if not queue_exists(src_repo, src_queue):
            raise click.ClickException(f"Queue {src_queue} does not exist")
        if not queue_exists(dst_repo, settings.dst.queue):
            raise click.ClickException(f"Queue {settings.dst.queue} does not exist")

        dispatcher = QueueDispatcher(dst_repo, source_queue=src_queue, encrypted=settings.dst.encrypted)
        handler = RelayHandler(JobPipeline(settings, dispatcher))

        counts: Counter[str] = Counter()
        # Cap runtime and message count so we don't overrun the next scheduled run.
        start_time = time.time()
        message_count = 0
        while time.time() - start_time < max_runtime and message_count < max_messages:
            message_count += 1
            message = src_repo.dequeue(src_queue, options={"visibility_timeout": visibility_timeout})
            if not message:
                time.sleep(poll_interval)
                continue
            try:
                handler.validate(message)
            except InvalidJobError as e:
                click.secho(f"Dropping invalid message: {e}", err=True, color=True, fg="yellow")
                acknowledge(src_repo, src_queue, message.msg_id, delete_messages)
                counts["invalid"] += 1
                continue
            try:
                outcome = handler.handle(message)
            except Exception as e:
                # Leave the message in place; the visibility timeout will release it.
                click.secho(f"Error relaying message {message.msg_id}: {e}", err=True, color=True, fg="red")
                click.secho(f"Stack trace: {traceback.format_exc()}", err=True, color=True, fg="red")
                counts["failed"] += 1
                continue
            acknowledge(src_repo, src_queue, message.msg_id, delete_messages)
            match outcome:
                case Forwarded():
                    counts["forwarded"] += 1
                case Dropped(reason=reason):
                    counts["dropped"] += 1
                    if verbose:
                        click.echo(f"Message {message.msg_id} dropped: {reason.value}")

        click.secho(
            f"Relayed {src_queue} -> {settings.dst.queue}: "
            f"forwarded={counts['forwarded']} dropped={counts['dropped']} "
            f"invalid={counts['invalid']} failed={counts['failed']}",
            color=True,
            fg="green",
        )
    finally:
        src_repo.close()
        if dst_repo is not None:
            dst_repo.close()


if __name__ == "__main__":
    main()
