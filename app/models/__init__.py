from .data_source import DataSource
from .entity import Entity
from .snapshot import Snapshot
from .unit_cost import UnitCost
from .comparison import CalculatedComparison
from .update_record import UpdateRecord, UpdateStatus
from .site_config import SiteConfig
from .luxury import LuxuryPurchase, LuxuryComparison

__all__ = [
    "DataSource",
    "Entity",
    "Snapshot",
    "UnitCost",
    "CalculatedComparison",
    "UpdateRecord",
    "UpdateStatus",
    "SiteConfig",
    "LuxuryPurchase",
    "LuxuryComparison",
]
