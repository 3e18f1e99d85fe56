# pylint: disable=broad-except
"""Message bus for the map view following Cosmic Python pattern."""

from __future__ import annotations
import logging
from typing import List, Dict, Callable, Type, Union, TYPE_CHECKING

from shared.domain.commands import Command, Event
from covid_map.domain import commands, events
from covid_map.service_layer import handlers
from covid_map.service_layer.state import PipelineCancelled

if TYPE_CHECKING:
    from covid_map.service_layer.context import ViewContext

logger = logging.getLogger(__name__)

Message = Union[Command, Event]


def handle(
    message: Message,
    ctx: ViewContext,
):
    """Handle message (command or event) with the appropriate handler."""
    results = []
    queue = [message]

    while queue:
        message = queue.pop(0)

        if isinstance(message, Event):
            handle_event(message, queue, ctx)
        elif isinstance(message, Command):
            cmd_result = handle_command(message, queue, ctx)
            results.append(cmd_result)
        else:
            raise Exception(f"{message} was not an Event or Command")

    return results


def handle_event(
    event: Event,
    queue: List[Message],
    ctx: ViewContext,
):
    """Handle event by calling all registered event handlers."""
    for handler in EVENT_HANDLERS[type(event)]:
        try:
            logger.debug(f"handling event {event} with handler {handler}")
            handler(event, ctx=ctx)
            queue.extend(ctx.collect_new_events())
        except Exception:
            logger.exception("Exception handling event %s", event)
            continue


def handle_command(
    command: Command,
    queue: List[Message],
    ctx: ViewContext,
):
    """Handle command by calling the registered command handler."""
    logger.debug(f"handling command {command}")
    try:
        handler = COMMAND_HANDLERS[type(command)]
        result = handler(command, ctx=ctx)
        queue.extend(ctx.collect_new_events())
        return result
    except PipelineCancelled:
        logger.info("Command %s cancelled, view closed", command)
        raise
    except Exception:
        logger.exception("Exception handling command %s", command)
        raise


EVENT_HANDLERS = {
    events.ReportedDateChanged: [handlers.record_reported_date],
    events.NeighbourhoodsLoaded: [],
    events.CasesLoaded: [handlers.mark_data_loaded],
    events.StreamFailed: [handlers.record_stream_failure],
    events.CameraMoved: [handlers.record_camera],
    events.RenderErrorRaised: [handlers.refresh_access_token],
}  # type: Dict[Type[Event], List[Callable]]

COMMAND_HANDLERS = {
    commands.FetchAccessToken: handlers.fetch_access_token,
    commands.LoadNeighbourhoods: handlers.load_neighbourhoods,
    commands.LoadCases: handlers.load_cases,
    commands.ResolvePopup: handlers.resolve_popup,
}  # type: Dict[Type[Command], Callable]
