"""
Region data container.
Holds the planned cells, terrain summary and connections of a generated region.
"""
from typing import List, Dict, Any, Optional, Tuple
import numpy as np
import json

from .cell_data import CellCoordinate, CellPlan, CellKind, Direction, Position, SegmentProfile


# Custom JSON encoder to handle Numpy types
class NumpyJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        return super(NumpyJSONEncoder, self).default(obj)


class RegionData:
    """
    Main container for a generated rectangle of cells.
    """

    def __init__(self, min_x: int, min_z: int, width: int, depth: int):
        self.min_x = min_x
        self.min_z = min_z
        self.width = width
        self.depth = depth

        # Terrain summary: average height per cell, indexed [row, column]
        self.heightmap: Optional[np.ndarray] = None

        self.plans: Dict[CellCoordinate, CellPlan] = {}
        self.connections: List[Tuple[Position, Position, Direction]] = []
        self.failed_cells: List[CellCoordinate] = []

        # Metadata
        self.generation_seed: Optional[int] = None
        self.generation_timestamp: Optional[str] = None
        self.metadata: Dict[str, Any] = {}

    def coordinates(self) -> List[CellCoordinate]:
        """Every cell of the region, row by row from the north-west corner."""
        return [
            CellCoordinate(self.min_x + col, self.min_z + row)
            for row in range(self.depth)
            for col in range(self.width)
        ]

    def contains(self, coord: CellCoordinate) -> bool:
        return (self.min_x <= coord.x < self.min_x + self.width and
                self.min_z <= coord.z < self.min_z + self.depth)

    def add_plan(self, plan: CellPlan) -> None:
        self.plans[plan.coordinate] = plan

    def get_plans_by_kind(self, kind: CellKind) -> List[CellPlan]:
        return [plan for plan in self.plans.values() if plan.cell.kind is kind]

    def get_statistics(self) -> Dict[str, Any]:
        """Get statistics about the region."""
        kind_counts: Dict[str, int] = {}
        segment_counts: Dict[str, int] = {}
        track_cells = 0
        for plan in self.plans.values():
            kind = plan.cell.kind.value
            kind_counts[kind] = kind_counts.get(kind, 0) + 1
            if plan.cell.has_track:
                track_cells += 1
            for segment in plan.segments:
                tag = segment.profile.value
                segment_counts[tag] = segment_counts.get(tag, 0) + 1

        return {
            'dimensions': f"{self.width} x {self.depth} cells",
            'cells': len(self.plans),
            'track_cells': track_cells,
            'kind_breakdown': kind_counts,
            'segment_breakdown': segment_counts,
            'stations': kind_counts.get(CellKind.STATION.value, 0),
            'bridges': sum(1 for p in self.plans.values() if p.cell.kind.is_bridge),
            'tunnels': sum(1 for p in self.plans.values() if p.cell.kind.is_tunnel),
            'pillars': segment_counts.get(SegmentProfile.PILLAR.value, 0),
            'connections': len(self.connections),
            'failed_cells': len(self.failed_cells),
            'seed': self.generation_seed
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert the region data to a dictionary for serialization."""
        return {
            'min_x': self.min_x,
            'min_z': self.min_z,
            'width': self.width,
            'depth': self.depth,
            'generation_seed': self.generation_seed,
            'generation_timestamp': self.generation_timestamp,
            'metadata': self.metadata,
            'heightmap': self.heightmap.tolist() if self.heightmap is not None else None,
            'cells': {
                coord.key(): {
                    'cell': plan.cell.to_dict(),
                    'average_height': plan.profile.average if plan.profile else None,
                    'variation': plan.profile.variation if plan.profile else None,
                    'segments': [s.to_dict() for s in plan.segments]
                } for coord, plan in self.plans.items()
            },
            'connections': [
                {
                    'from': a.to_tuple(),
                    'to': b.to_tuple(),
                    'direction': direction.name
                } for a, b, direction in self.connections
            ],
            'failed_cells': [coord.key() for coord in self.failed_cells]
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, cls=NumpyJSONEncoder)
