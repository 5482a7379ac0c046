"""Tabular and JSON export of a placement report."""

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

ROOM_COLUMNS = ['floor', 'order', 'name', 'location_type', 'x', 'y', 'elevation', 'signal',
                'relative_height', 'placement', 'is_estimated', 'samples', 'recommendations']
EXTENDER_COLUMNS = ['priority', 'floor', 'target_room', 'placement_room', 'x', 'y',
                    'signal_improvement', 'signal_gain', 'extender_type', 'is_marginal',
                    'is_estimated', 'reasoning']


def convert_numpy_types(obj: Any) -> Any:
    """Convert numpy types to native Python types for JSON serialization."""
    if isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, dict):
        return {key: convert_numpy_types(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_numpy_types(item) for item in obj]
    return obj


def rooms_to_dataframe(report) -> pd.DataFrame:
    """One row per resolved room, in walk order."""
    rows = [{
        'floor': room.floor,
        'order': room.order,
        'name': room.name,
        'location_type': room.location_type.value,
        'x': room.position[0],
        'y': room.position[1],
        'elevation': room.elevation,
        'signal': room.signal,
        'relative_height': room.relative_height,
        'placement': room.placement.value,
        'is_estimated': room.is_estimated,
        'samples': len(room.sample_ids),
        'recommendations': "; ".join(room.recommendations),
    } for room in report.rooms]
    return pd.DataFrame(rows, columns=ROOM_COLUMNS)


def extenders_to_dataframe(report) -> pd.DataFrame:
    """One row per extender recommendation, by priority."""
    rows = [{
        'priority': rec.priority,
        'floor': rec.floor,
        'target_room': rec.target_room.name,
        'placement_room': rec.placement_room.name if rec.placement_room else None,
        'x': rec.recommended_position[0],
        'y': rec.recommended_position[1],
        'signal_improvement': rec.signal_improvement,
        'signal_gain': rec.signal_gain,
        'extender_type': rec.extender_type.value,
        'is_marginal': rec.is_marginal,
        'is_estimated': rec.is_estimated,
        'reasoning': rec.reasoning,
    } for rec in report.extenders]
    return pd.DataFrame(rows, columns=EXTENDER_COLUMNS)


def _router_to_dict(rec) -> Optional[Dict[str, Any]]:
    if rec is None:
        return None
    return {
        'floor': rec.floor,
        'room': rec.room.name,
        'position': rec.position,
        'score': rec.score,
        'factors': rec.factor_scores,
        'reasoning': rec.reasoning,
        'mode': rec.mode,
        'is_estimated': rec.room.is_estimated,
    }


def report_to_dict(report) -> Dict[str, Any]:
    """Plain JSON-ready view of a report."""
    data = {
        'generated_at': datetime.now().isoformat(),
        'coverage': report.coverage.to_dict(),
        'coverage_by_floor': {str(floor): c.to_dict() for floor, c in report.coverage_by_floor},
        'health': {
            'value': report.health.value,
            'label': report.health.label,
            'description': report.health.description,
        },
        'router': _router_to_dict(report.router),
        'floor_routers': [_router_to_dict(r) for r in report.floor_routers],
        'extenders': extenders_to_dataframe(report).to_dict(orient='records'),
        'device_strategy': {
            'strategy': report.device_strategy.value,
            'description': report.device_strategy.description,
        },
        'rooms': rooms_to_dataframe(report).to_dict(orient='records'),
        'config': report.config.to_dict(),
    }
    return convert_numpy_types(data)


def heatmap_to_dataframe(heatmap) -> pd.DataFrame:
    """Long-form (x, y, signal) rows for one floor's heatmap."""
    grid_x, grid_y = np.meshgrid(heatmap.xs, heatmap.ys)
    return pd.DataFrame({
        'floor': heatmap.floor,
        'x': grid_x.ravel(),
        'y': grid_y.ravel(),
        'signal': heatmap.values.ravel(),
    })


def save_report(report, output_dir: str, heatmap_resolution: Optional[float] = None) -> Dict[str, str]:
    """
    Write ``report.json``, ``rooms.csv`` and ``extenders.csv`` to ``output_dir``,
    plus ``heatmap_floor_N.csv`` per floor when a resolution is given.

    Returns a mapping of artifact name to path.
    """
    os.makedirs(output_dir, exist_ok=True)
    paths = {
        'report': os.path.join(output_dir, 'report.json'),
        'rooms': os.path.join(output_dir, 'rooms.csv'),
        'extenders': os.path.join(output_dir, 'extenders.csv'),
    }
    with open(paths['report'], 'w') as f:
        json.dump(report_to_dict(report), f, indent=2)
    rooms_to_dataframe(report).to_csv(paths['rooms'], index=False)
    extenders_to_dataframe(report).to_csv(paths['extenders'], index=False)

    if heatmap_resolution:
        for floor, heatmap in report.surface.heatmaps(heatmap_resolution, parallel=True).items():
            key = f'heatmap_floor_{floor}'
            paths[key] = os.path.join(output_dir, f'{key}.csv')
            heatmap_to_dataframe(heatmap).to_csv(paths[key], index=False)

    logger.info(f"Report saved to {output_dir} ({len(paths)} files)")
    return paths
