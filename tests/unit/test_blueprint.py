import json

import numpy as np
import pytest

from spaceflight.core.errors import (
    CycleDetectedError,
    DuplicatePartError,
    GraphError,
    UnknownParentError,
)
from spaceflight.parts.blueprint import VehicleBlueprint, load_blueprint
from spaceflight.parts.part import PartKind


def _blueprint(parts):
    return VehicleBlueprint.from_dict({'name': 'test', 'parts': parts})


def test_build_two_stage_graph(blueprint):
    graph = blueprint.build_graph()
    assert graph.root_id == 'pod'
    assert graph.path_to_root('engine') == ['engine', 'tank', 'pod']
    assert graph.get('engine').kind is PartKind.ENGINE
    assert np.isclose(graph.aggregate().mass_kg, 840.0 + 125.0 + 100.0 + 150.0)


def test_each_build_is_independent(blueprint):
    first = blueprint.build_graph()
    second = blueprint.build_graph()
    first.detach('tank')
    assert 'tank' in second


def test_children_listed_before_parents():
    graph = _blueprint([
        {'id': 'engine', 'kind': 'engine', 'parent': 'tank', 'thrust_n': 100.0, 'isp_s': 200.0},
        {'id': 'tank', 'kind': 'tank', 'parent': 'pod', 'fuel_kg': 10.0},
        {'id': 'pod', 'kind': 'command', 'dry_mass_kg': 10.0},
    ]).build_graph()
    assert graph.parent_of('engine') == 'tank'


def test_structural_errors():
    with pytest.raises(GraphError):
        _blueprint([{'id': 'a', 'kind': 'command'}, {'id': 'b', 'kind': 'command'}]).build_graph()

    with pytest.raises(DuplicatePartError):
        _blueprint([{'id': 'pod', 'kind': 'command'},
                    {'id': 'pod', 'kind': 'tank', 'parent': 'pod'}]).build_graph()

    with pytest.raises(UnknownParentError):
        _blueprint([{'id': 'pod', 'kind': 'command'},
                    {'id': 'tank', 'kind': 'tank', 'parent': 'ghost'}]).build_graph()

    with pytest.raises(CycleDetectedError):
        _blueprint([{'id': 'pod', 'kind': 'command'},
                    {'id': 'a', 'parent': 'b'},
                    {'id': 'b', 'parent': 'a'}]).build_graph()


def test_invalid_part_values_become_graph_errors():
    with pytest.raises(GraphError):
        _blueprint([{'id': 'pod', 'kind': 'command', 'dry_mass_kg': -5}]).build_graph()

    with pytest.raises(GraphError):
        _blueprint([{'id': 'pod', 'kind': 'antimatter'}]).build_graph()


def test_round_trip_through_json(tmp_path, blueprint):
    path = tmp_path / "hopper.json"
    path.write_text(json.dumps(blueprint.to_dict()))

    loaded = load_blueprint(path)
    assert loaded.name == blueprint.name
    assert loaded.parts == blueprint.parts
