import numpy as np
import pytest

from spaceflight.core.errors import (
    CycleDetectedError,
    DuplicatePartError,
    GraphError,
    RootDetachError,
    UnknownParentError,
    UnknownPartError,
)
from spaceflight.parts.graph import PartGraph
from spaceflight.parts.part import G0, Part, PartKind, PartStatus


def _graph():
    graph = PartGraph(Part('pod', PartKind.COMMAND, dry_mass_kg=500.0))
    graph.attach(Part('tank', PartKind.TANK, dry_mass_kg=100.0, fuel_mass_kg=400.0), 'pod')
    graph.attach(Part('engine', PartKind.ENGINE, dry_mass_kg=50.0,
                      thrust_n=20000.0, isp_s=300.0), 'tank')
    graph.attach(Part('fin', PartKind.STRUCTURAL, dry_mass_kg=5.0), 'pod')
    return graph


def _expected_mass(graph):
    return sum(p.dry_mass_kg + p.fuel_mass_kg for p in graph.parts())


def test_part_rejects_invalid_values():
    with pytest.raises(ValueError):
        Part('x', dry_mass_kg=-1.0)
    with pytest.raises(ValueError):
        Part('x', PartKind.ENGINE, thrust_n=100.0, isp_s=0.0)
    with pytest.raises(ValueError):
        Part('x', fuel_mass_kg=10.0, fuel_capacity_kg=5.0)
    with pytest.raises(ValueError):
        Part('x', kind='warp_drive')


def test_engine_fuel_flow():
    engine = Part('e', PartKind.ENGINE, thrust_n=300.0 * G0, isp_s=300.0)
    assert np.isclose(engine.fuel_flow_kg_s, 1.0)


def test_root_must_be_command_part():
    with pytest.raises(GraphError):
        PartGraph(Part('tank', PartKind.TANK))


def test_structure_queries():
    graph = _graph()
    assert len(graph) == 4
    assert graph.parent_of('engine') == 'tank'
    assert set(graph.children_of('pod')) == {'tank', 'fin'}
    assert graph.path_to_root('engine') == ['engine', 'tank', 'pod']
    assert graph.subtree('tank') == ['tank', 'engine']
    assert graph.parts()[0].part_id == 'pod'
    assert 'tank' in graph.get('engine').attachments


def test_attach_unknown_parent_leaves_graph_unchanged():
    graph = _graph()
    with pytest.raises(UnknownParentError):
        graph.attach(Part('strut'), 'nowhere')
    assert 'strut' not in graph
    assert len(graph) == 4


def test_attach_under_own_subtree_is_a_cycle():
    graph = _graph()
    tank = graph.get('tank')
    with pytest.raises(CycleDetectedError):
        graph.attach(tank, 'engine')
    assert graph.parent_of('tank') == 'pod'
    assert graph.parent_of('engine') == 'tank'


def test_attach_duplicate_id():
    graph = _graph()
    with pytest.raises(DuplicatePartError):
        graph.attach(Part('fin'), 'tank')


def test_move_part_to_new_parent():
    graph = _graph()
    graph.attach(graph.get('fin'), 'tank')
    assert graph.parent_of('fin') == 'tank'
    assert 'fin' not in graph.children_of('pod')
    assert 'pod' not in graph.get('fin').attachments


def test_detach_root_rejected():
    graph = _graph()
    with pytest.raises(RootDetachError):
        graph.detach('pod')
    assert len(graph) == 4


def test_detach_removes_subtree():
    graph = _graph()
    removed = graph.detach('tank')
    assert [p.part_id for p in removed] == ['tank', 'engine']
    assert all(p.status is PartStatus.DETACHED for p in removed)
    assert 'engine' not in graph
    with pytest.raises(UnknownPartError):
        graph.get('engine')


def test_aggregate_mass_after_every_mutation():
    graph = _graph()
    assert np.isclose(graph.aggregate().mass_kg, _expected_mass(graph))

    graph.attach(Part('strut', dry_mass_kg=7.0), 'tank')
    assert np.isclose(graph.aggregate().mass_kg, _expected_mass(graph))

    graph.set_fuel('tank', 150.0)
    assert np.isclose(graph.aggregate().mass_kg, _expected_mass(graph))

    graph.detach('fin')
    assert np.isclose(graph.aggregate().mass_kg, _expected_mass(graph))

    graph.detach('tank')
    assert np.isclose(graph.aggregate().mass_kg, 500.0)


def test_thrust_requires_active_fuel():
    graph = _graph()
    agg = graph.aggregate()
    assert agg.thrust_n == 0.0  # nothing active yet
    assert np.isclose(agg.fuel_kg, 400.0)

    graph.set_status('tank', PartStatus.ACTIVE)
    graph.set_status('engine', PartStatus.ACTIVE)
    agg = graph.aggregate()
    assert np.isclose(agg.thrust_n, 20000.0)
    assert np.isclose(agg.specific_impulse_s, 300.0)
    assert agg.active_engines == 1


def test_drain_active_fuel_proportional_and_clamped():
    graph = _graph()
    graph.attach(Part('tank2', PartKind.TANK, fuel_mass_kg=100.0), 'pod')
    for pid in ('tank', 'tank2'):
        graph.set_status(pid, PartStatus.ACTIVE)

    drawn = graph.drain_active_fuel(250.0)
    assert np.isclose(drawn, 250.0)
    assert np.isclose(graph.get('tank').fuel_mass_kg, 200.0)
    assert np.isclose(graph.get('tank2').fuel_mass_kg, 50.0)

    drawn = graph.drain_active_fuel(1000.0)
    assert np.isclose(drawn, 250.0)
    assert graph.aggregate().active_fuel_kg == 0.0


def test_set_fuel_out_of_range():
    graph = _graph()
    with pytest.raises(GraphError):
        graph.set_fuel('tank', 500.0)


def test_set_status_refuses_detached():
    graph = _graph()
    with pytest.raises(GraphError):
        graph.set_status('fin', PartStatus.DETACHED)


def test_checkpoint_restore():
    graph = _graph()
    saved = graph.checkpoint()
    graph.detach('tank')
    graph.restore(saved)
    assert graph.path_to_root('engine') == ['engine', 'tank', 'pod']
    assert np.isclose(graph.aggregate().mass_kg, 1055.0)
