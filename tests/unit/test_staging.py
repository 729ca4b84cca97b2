import numpy as np
import pytest

from spaceflight.core.errors import NoStagesRemainError
from spaceflight.parts.graph import PartGraph
from spaceflight.parts.part import Part, PartKind, PartStatus
from spaceflight.parts.staging import StagingEngine


def _three_stage_graph():
    """pod(2) <- chute(2), pod <- decoupler(1) <- tank(0) <- engine(0)."""
    graph = PartGraph(Part('pod', PartKind.COMMAND, dry_mass_kg=500.0, stage=2))
    graph.attach(Part('chute', PartKind.PARACHUTE, dry_mass_kg=20.0, stage=2), 'pod')
    graph.attach(Part('decoupler', PartKind.DECOUPLER, dry_mass_kg=30.0, stage=1), 'pod')
    graph.attach(Part('tank', PartKind.TANK, dry_mass_kg=100.0, fuel_mass_kg=200.0, stage=0),
                 'decoupler')
    graph.attach(Part('engine', PartKind.ENGINE, dry_mass_kg=50.0, thrust_n=10000.0,
                      isp_s=250.0, stage=0), 'tank')
    return graph


def test_stage_zero_ignited_on_creation(graph):
    staging = StagingEngine(graph)
    assert staging.current_stage == 0
    assert graph.get('engine').status is PartStatus.ACTIVE
    assert graph.get('tank').status is PartStatus.ACTIVE
    assert graph.get('pod').status is PartStatus.INACTIVE
    assert graph.aggregate().thrust_n > 0


def test_two_stage_jettison(graph):
    staging = StagingEngine(graph, auto_stage=False)
    assert staging.final_stage == 1

    event = staging.advance_stage(time_s=3.0)
    assert (event.from_stage, event.to_stage) == (0, 1)
    assert set(event.detached_part_ids) == {'tank', 'engine'}
    assert event.activated_part_ids == ('pod',)
    assert event.time_s == 3.0
    assert not event.automatic

    assert np.isclose(graph.aggregate().mass_kg, 840.0)
    assert graph.aggregate().thrust_n == 0.0
    assert staging.is_terminal


def test_terminal_stage_raises_and_leaves_state_unchanged(graph):
    staging = StagingEngine(graph)
    staging.advance_stage()
    mass = graph.aggregate().mass_kg
    parts = [p.part_id for p in graph.parts()]

    with pytest.raises(NoStagesRemainError):
        staging.advance_stage()

    assert staging.current_stage == 1
    assert len(staging.history) == 1
    assert graph.aggregate().mass_kg == mass
    assert [p.part_id for p in graph.parts()] == parts


def test_decoupler_and_parachute_rules():
    graph = _three_stage_graph()
    staging = StagingEngine(graph)

    # Stage 0: tank (structural release) drops itself and the engine
    event = staging.advance_stage()
    assert set(event.detached_part_ids) == {'tank', 'engine'}
    assert graph.get('decoupler').status is PartStatus.ACTIVE

    # Stage 1: decoupler fires, drops its (now empty) children and stays attached
    event = staging.advance_stage()
    assert event.detached_part_ids == ()
    assert graph.get('decoupler').status is PartStatus.CONSUMED
    assert set(event.activated_part_ids) == {'pod', 'chute'}
    assert staging.is_terminal

    with pytest.raises(NoStagesRemainError):
        staging.advance_stage()


def test_decoupler_detaches_children():
    graph = PartGraph(Part('pod', PartKind.COMMAND, dry_mass_kg=500.0, stage=1))
    graph.attach(Part('decoupler', PartKind.DECOUPLER, dry_mass_kg=30.0, stage=0), 'pod')
    graph.attach(Part('booster', PartKind.TANK, dry_mass_kg=100.0), 'decoupler')
    staging = StagingEngine(graph)

    event = staging.advance_stage()
    assert event.detached_part_ids == ('booster',)
    assert 'decoupler' in graph
    assert graph.get('decoupler').status is PartStatus.CONSUMED
    assert np.isclose(graph.aggregate().mass_kg, 530.0)


def test_parachute_arms_when_its_stage_fires():
    graph = PartGraph(Part('pod', PartKind.COMMAND, dry_mass_kg=500.0, stage=1))
    graph.attach(Part('chute', PartKind.PARACHUTE, dry_mass_kg=20.0, stage=0), 'pod')
    staging = StagingEngine(graph)

    event = staging.advance_stage()
    assert event.armed_part_ids == ('chute',)
    assert graph.get('chute').armed
    assert 'chute' in graph


def test_empty_stage_group_is_skipped_over():
    graph = PartGraph(Part('pod', PartKind.COMMAND, dry_mass_kg=500.0, stage=3))
    graph.attach(Part('tank', PartKind.TANK, dry_mass_kg=100.0, stage=0), 'pod')
    staging = StagingEngine(graph)

    assert staging.group(1).is_empty
    assert len(staging.groups()) == 4

    staging.advance_stage()
    event = staging.advance_stage()
    assert event.detached_part_ids == () and event.activated_part_ids == ()
    staging.advance_stage()
    assert staging.current_stage == 3
    assert staging.is_terminal


def test_should_auto_stage_only_when_dry_under_throttle(graph):
    staging = StagingEngine(graph)
    assert not staging.should_auto_stage(1.0)

    graph.set_fuel('tank', 0.0)
    assert staging.should_auto_stage(1.0)
    assert not staging.should_auto_stage(0.0)

    staging.auto_stage = False
    assert not staging.should_auto_stage(1.0)


def test_failed_advance_rolls_back(graph, monkeypatch):
    staging = StagingEngine(graph)
    mass = graph.aggregate().mass_kg

    def broken(index):
        raise RuntimeError("activation failed")

    monkeypatch.setattr(staging, '_activate', broken)
    with pytest.raises(RuntimeError):
        staging.advance_stage()

    assert staging.current_stage == 0
    assert 'engine' in staging.graph
    assert staging.graph.aggregate().mass_kg == mass
    assert staging.history == []
