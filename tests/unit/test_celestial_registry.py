import gc
import json
import weakref

import numpy as np
import pytest

from spaceflight.core.errors import CatalogError
from spaceflight.environment.catalog import SOLAR_SYSTEM, solar_system
from spaceflight.environment.celestial import (
    CelestialRegistry,
    gravitational_acceleration_at,
    load_catalog,
)

STAR = {'id': 'star', 'mass_kg': 2e30, 'radius_m': 7e8}
PLANET = {'id': 'planet', 'parent': 'star', 'mass_kg': 6e24, 'radius_m': 6.4e6,
          'orbit': {'semi_major_axis_m': 1.5e11, 'eccentricity': 0.01}}


def test_solar_system_tree(registry):
    assert registry.root.body_id == 'sun'
    assert registry.parent_of('moon').body_id == 'earth'
    assert 'moon' in [b.body_id for b in registry.children_of('earth')]
    assert registry.ancestors('moon') == ['moon', 'earth', 'sun']
    assert registry.common_ancestor('moon', 'mars') == 'sun'
    assert registry.common_ancestor('moon', 'earth') == 'earth'


def test_soi_radii(registry):
    assert registry.root.soi_radius_m == float('inf')
    assert 6.5e7 < registry.get('moon').soi_radius_m < 6.7e7
    assert 9.0e8 < registry.get('earth').soi_radius_m < 9.5e8


def test_unknown_body_raises(registry):
    with pytest.raises(CatalogError):
        registry.get('pluto')


def test_root_state_is_zero(registry):
    r, v = registry.state_relative_to_parent('sun', 1000.0)
    assert not np.any(r) and not np.any(v)


def test_moon_state_relative_to_sun_chains_parents(registry):
    t = 12345.0
    r_moon, v_moon = registry.state_relative_to_parent('moon', t)
    r_earth, v_earth = registry.state_relative_to_parent('earth', t)
    r, v = registry.state_relative_to_ancestor('moon', 'sun', t)
    assert np.allclose(r, r_moon + r_earth)
    assert np.allclose(v, v_moon + v_earth)


def test_ephemeris_returns_fresh_arrays_and_holds_no_registry_reference():
    registry = solar_system()
    r, v = registry.state_relative_to_parent('moon', 12.5)
    r[:] = 0.0
    r_again, _ = registry.state_relative_to_parent('moon', 12.5)
    assert np.linalg.norm(r_again) > 3e8

    ref = weakref.ref(registry)
    del registry
    gc.collect()
    assert ref() is None


def test_find_reference_body(registry):
    t = 0.0
    r_earth, _ = registry.state_relative_to_parent('earth', t)
    r_moon, _ = registry.state_relative_to_parent('moon', t)

    assert registry.find_reference_body(r_earth + [7e6, 0, 0], t) == 'earth'
    assert registry.find_reference_body(r_earth + r_moon + [2e6, 0, 0], t) == 'moon'
    assert registry.find_reference_body(r_earth + [5e9, 0, 0], t) == 'sun'


def test_gravity_points_at_centre(registry):
    earth = registry.get('earth')
    a = gravitational_acceleration_at(np.array([earth.radius_m, 0, 0]), earth)
    assert a[0] < 0
    assert np.isclose(np.linalg.norm(a), 9.82, atol=0.02)


def test_catalog_validation_errors():
    with pytest.raises(CatalogError):
        CelestialRegistry.from_catalog([STAR, dict(STAR)])  # duplicate

    with pytest.raises(CatalogError):
        CelestialRegistry.from_catalog([STAR, dict(STAR, id='star2')])  # two roots

    with pytest.raises(CatalogError):
        CelestialRegistry.from_catalog([STAR, dict(PLANET, parent='nowhere')])

    with pytest.raises(CatalogError):
        CelestialRegistry.from_catalog([STAR, dict(PLANET, mass_kg=3e30)])  # heavier than parent

    with pytest.raises(CatalogError):
        # second planet's SOI overlaps the first
        CelestialRegistry.from_catalog([STAR, PLANET, dict(PLANET, id='twin')])


def test_catalog_entry_missing_key():
    with pytest.raises(CatalogError):
        CelestialRegistry.from_catalog([{'id': 'star', 'radius_m': 1.0}])


def test_load_catalog_from_json(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({'bodies': SOLAR_SYSTEM}))
    registry = load_catalog(path)
    assert len(registry) == len(SOLAR_SYSTEM)
    assert registry.get('earth').atmosphere is not None
    assert registry.get('moon').atmosphere is None
