"""
weekgrid - weekly timetable scheduling engine.

Places theory and lab sessions on a (day, period, room) grid without
double-booking teachers or rooms, keeps labs on two consecutive periods
and never uses the lunch period.
"""

from weekgrid.availability import free_rooms, legal_starts, room_is_free, teacher_is_free
from weekgrid.errors import (
    ConflictError,
    GridConfigError,
    InvalidSpanError,
    NoLegalPlacementError,
    RoomConflictError,
    SlotOccupiedError,
    StorageError,
    TeacherConflictError,
    UnknownSessionError,
    WeekgridError,
)
from weekgrid.generator import GenerationResult, Generator, GeneratorPolicy, generate
from weekgrid.grid import DEFAULT_GRID, TimeGrid
from weekgrid.model import ClassRef, FacultyWorkload, Period, Requirement, Session, SessionKind, Unplaced
from weekgrid.occupancy import OccupancyIndex
from weekgrid.timetable import Timetable
from weekgrid.workload import all_workloads, workload_for
