"""Configuration settings for the neighbourhood case map."""

import os


def get_api_url():
    """Get backend URL (token and Toronto open data proxy) from environment variables."""
    host = os.environ.get("API_HOST", "localhost")
    port = int(os.environ.get("API_PORT", 8000))
    return f"http://{host}:{port}"


def get_resource_ids():
    """Get Toronto open data package ids from environment variables."""
    return dict(
        neighbourhoods=os.environ.get(
            "NEIGHBOURHOODS_ID", "4def3f65-2a65-4a4f-83c4-b2a4aed72d46"
        ),
        covid=os.environ.get("COVID_ID", "64b54586-6180-4485-83eb-81e8fae3b8fe"),
    )


def get_page_size():
    """Records requested per datastore page."""
    return int(os.environ.get("PAGE_SIZE", 100))


def get_flush_every():
    """Number of case pages consumed between two snapshot flushes."""
    return int(os.environ.get("FLUSH_EVERY", 5))


def get_request_timeout():
    """HTTP timeout in seconds for the backend calls."""
    return float(os.environ.get("REQUEST_TIMEOUT", 30))


def get_metric_rule():
    """Which case outcomes increment the active-case metric ('non-active' or 'active')."""
    return os.environ.get("ACTIVE_METRIC_RULE", "non-active").lower()


def get_map_settings():
    """Get initial camera and style of the map surface."""
    return dict(
        style=os.environ.get("MAP_STYLE", "mapbox://styles/mapbox/dark-v10"),
        center=(-79.404, 43.698),
        zoom=10,
        pitch=40,
        bearing=20,
        antialias=True,
        container=os.environ.get("MAP_CONTAINER") or None,
    )
