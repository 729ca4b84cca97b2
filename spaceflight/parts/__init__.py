"""
Parts Module
============

Vehicle part graphs, staging and blueprints.
"""

from .part import G0, Part, PartKind, PartStatus
from .graph import PartGraph, VehicleAggregate
from .staging import StageGroup, StagingEngine, StagingEvent
from .blueprint import VehicleBlueprint, load_blueprint, part_from_dict

__all__ = [
    'G0',
    'Part',
    'PartKind',
    'PartStatus',
    'PartGraph',
    'VehicleAggregate',
    'StageGroup',
    'StagingEngine',
    'StagingEvent',
    'VehicleBlueprint',
    'load_blueprint',
    'part_from_dict',
]
