import abc
import logging
from typing import Dict, List, Optional

from covid_map.domain.model import Area, Dataset

logger = logging.getLogger(__name__)


class AbstractAreaRepository(abc.ABC):
    """Working set of areas, keyed by cleaned name."""

    def add(self, area: Area) -> bool:
        if self.get(area.name) is not None:
            logger.warning(f"Duplicate area name {area.name!r}, keeping the first one")
            return False
        self._add(area)
        return True

    def snapshot(self) -> Dataset:
        return Dataset.from_areas(self.list())

    @abc.abstractmethod
    def _add(self, area: Area):
        raise NotImplementedError

    @abc.abstractmethod
    def get(self, name: str) -> Optional[Area]:
        raise NotImplementedError

    @abc.abstractmethod
    def list(self) -> List[Area]:
        raise NotImplementedError


class InMemoryAreaRepository(AbstractAreaRepository):
    def __init__(self):
        self._areas = {}  # type: Dict[str, Area]

    def _add(self, area):
        self._areas[area.name] = area

    def get(self, name):
        return self._areas.get(name)

    def list(self) -> List[Area]:
        return list(self._areas.values())
