from .equipment import Equipment, Loadout, loadout_equipment
from .line_item import LineItem
from .time_entry import TimeEntry
from .work_order import WorkOrder
from .worker import Worker

__all__ = ["Worker", "Equipment", "Loadout", "loadout_equipment", "WorkOrder", "LineItem", "TimeEntry"]
