"""Sequential data load: geometry first, then cases, then completion."""

import logging

from covid_map.domain import commands
from covid_map.service_layer import messagebus
from covid_map.service_layer.context import ViewContext
from covid_map.service_layer.state import PipelineCancelled, PipelineState

logger = logging.getLogger(__name__)


def run(ctx: ViewContext) -> PipelineState:
    """
    Drive both streams to completion on the calling thread.

    Stream failures are contained by their handlers; the pipeline then ends in
    FAILED with whatever was already flushed still on the map.
    """
    if ctx.machine.finished:
        logger.warning(f"Data load already ended in {ctx.machine.state.value}, not restarting")
        return ctx.machine.state

    ids = ctx.settings.resource_ids
    try:
        messagebus.handle(commands.LoadNeighbourhoods(package_id=ids["neighbourhoods"]), ctx)
        messagebus.handle(commands.LoadCases(package_id=ids["covid"]), ctx)
    except PipelineCancelled:
        logger.info("Data load stopped, view closed")
        return ctx.machine.state
    except Exception:
        if not ctx.machine.finished:
            ctx.machine.advance(PipelineState.FAILED)
        raise

    if ctx.failures:
        ctx.machine.advance(PipelineState.FAILED)
        logger.warning(f"Data load finished with {len(ctx.failures)} failed stream(s)")
    else:
        ctx.machine.advance(PipelineState.COMPLETED)
        logger.info("Data load completed")
    return ctx.machine.state
