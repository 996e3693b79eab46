"""
Allocation and results schemas
"""

from typing import List
from pydantic import BaseModel

class AllocationSummary(BaseModel):
    assigned: int
    unassigned: int
    total: int

class OptionResult(BaseModel):
    option_id: str
    option_name: str
    capacity: int
    assigned: List[str]

class ResultsView(BaseModel):
    options: List[OptionResult]
    unassigned: List[str]
