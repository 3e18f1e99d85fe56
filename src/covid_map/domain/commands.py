"""Commands for the neighbourhood case map."""

from dataclasses import dataclass

from shared.domain.commands import Command


@dataclass
class FetchAccessToken(Command):
    """Command to acquire the access token used by the map surface."""
    pass


@dataclass
class LoadNeighbourhoods(Command):
    """Command to page through the neighbourhood geometry package."""
    package_id: str


@dataclass
class LoadCases(Command):
    """Command to page through the case package and join it onto the areas."""
    package_id: str


@dataclass
class ResolvePopup(Command):
    """Command to build the popup for a click on the map."""
    lng: float
    lat: float
    layer_id: str = None
    feature_name: str = None
