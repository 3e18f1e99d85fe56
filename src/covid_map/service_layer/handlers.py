import logging

from covid_map.adapters.map_surface import ClickEvent
from covid_map.adapters.toronto_client import GatewayError
from covid_map.adapters.token_client import CredentialError
from covid_map.domain import commands, events
from covid_map.domain.schemas import ParseError
from covid_map.service_layer.context import ViewContext
from covid_map.service_layer.interaction import Popup, build_popup
from covid_map.service_layer.pagination import PaginationEngine, covid_records, neighbourhood_records

logger = logging.getLogger(__name__)


def fetch_access_token(command: commands.FetchAccessToken, ctx: ViewContext) -> str:
    """
    Acquire the map access token.

    Raises:
        CredentialError: Terminal for this attempt; the view shows the message
    """
    return ctx.credentials.fetch_token()


def load_neighbourhoods(command: commands.LoadNeighbourhoods, ctx: ViewContext) -> int:
    """
    Page through the geometry package and create one area per record.

    Flow:
    1. Discover the active resource and its record total
    2. Fetch pages sequentially, creating areas
    3. Flush one snapshot so outlines render before case data arrives

    A failed page aborts this package only; whatever was ingested is flushed.
    """
    logger.info(f"Loading neighbourhoods from package {command.package_id}")
    engine = PaginationEngine(ctx.gateway, ctx.machine, on_metadata=lambda r: _report_metadata(ctx, r))
    batches = engine.fetch_all_pages(command.package_id, ctx.settings.page_size, neighbourhood_records)

    try:
        added = ctx.aggregator.ingest_geometry(batches)
    except (GatewayError, ParseError) as e:
        logger.error(f"Neighbourhood pagination aborted for {command.package_id}: {e}")
        ctx.events.append(events.StreamFailed(package_id=command.package_id, reason=str(e)))
        ctx.flush(ctx.aggregator.snapshot())
        return 0

    if added:
        ctx.flush(ctx.aggregator.snapshot())
    ctx.events.append(events.NeighbourhoodsLoaded(area_count=added))
    return added


def load_cases(command: commands.LoadCases, ctx: ViewContext) -> int:
    """
    Page through the case package and join each record onto its area.

    Snapshots are flushed every ``flush_every`` pages and once at the end.
    """
    logger.info(f"Loading cases from package {command.package_id}")
    engine = PaginationEngine(ctx.gateway, ctx.machine, on_metadata=lambda r: _report_metadata(ctx, r))
    batches = engine.fetch_all_pages(command.package_id, ctx.settings.page_size, covid_records)

    try:
        ctx.aggregator.ingest_cases(batches, flush=ctx.flush)
    except (GatewayError, ParseError) as e:
        logger.error(f"Case pagination aborted for {command.package_id}: {e}")
        ctx.events.append(events.StreamFailed(package_id=command.package_id, reason=str(e)))
        ctx.flush(ctx.aggregator.snapshot())
        return ctx.aggregator.matched_cases

    ctx.events.append(
        events.CasesLoaded(
            matched=ctx.aggregator.matched_cases,
            unmatched=ctx.aggregator.unmatched_cases,
        )
    )
    return ctx.aggregator.matched_cases


def resolve_popup(command: commands.ResolvePopup, ctx: ViewContext) -> Popup:
    click = ClickEvent(
        lng=command.lng,
        lat=command.lat,
        layer_id=command.layer_id,
        feature_name=command.feature_name,
    )
    return build_popup(ctx.delivered, click)


def _report_metadata(ctx: ViewContext, resource) -> None:
    if resource.last_modified:
        ctx.events.append(events.ReportedDateChanged(last_modified=resource.last_modified))


def record_reported_date(event: events.ReportedDateChanged, ctx: ViewContext):
    ctx.reported_date = event.last_modified


def mark_data_loaded(event: events.CasesLoaded, ctx: ViewContext):
    logger.info(f"Case stream complete: {event.matched} joined, {event.unmatched} unmatched")
    ctx.is_data_loaded = True


def record_stream_failure(event: events.StreamFailed, ctx: ViewContext):
    ctx.failures.append(event)


def record_camera(event: events.CameraMoved, ctx: ViewContext):
    ctx.camera = (round(event.lng, 3), round(event.lat, 3), round(event.zoom, 2))


def refresh_access_token(event: events.RenderErrorRaised, ctx: ViewContext):
    """
    Recover from an expired token: one refresh per 401, the surface is kept.

    Other surface errors are only logged.
    """
    if event.status != 401:
        logger.warning(f"Map surface error {event.status}: {event.message}")
        return

    logger.info("Map surface rejected the access token, refreshing")
    try:
        ctx.credentials.fetch_token()
    except CredentialError as e:
        logger.error(f"Token refresh failed: {e}")
        return

    if ctx.handle is not None:
        ctx.handle.surface.refresh_credentials()
