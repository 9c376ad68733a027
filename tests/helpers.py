"""
Shared fixtures for the test modules.

The test grid keeps the reference layout (8 periods, index 4 = lunch)
but uses short room names.
"""

from weekgrid.grid import DEFAULT_PERIODS, TimeGrid
from weekgrid.model import ClassRef

GRID = TimeGrid(
    days=("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"),
    periods=DEFAULT_PERIODS,
    rooms=("101", "102", "103"),
    labs=("L1", "L2"),
)

C1 = ClassRef("C1", "T1", "Data Structures", "CS201", "A", "Dr. One")
C2 = ClassRef("C2", "T2", "Discrete Maths", "MA202", "A", "Dr. Two")
C3 = ClassRef("C3", "T1", "Algorithms", "CS301", "A", "Dr. One")
C4 = ClassRef("C4", "T4", "Physics", "PH101", "A", "Dr. Four")
