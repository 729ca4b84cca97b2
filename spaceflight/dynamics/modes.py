"""
Propagation Modes
=================

A vehicle is propagated either on rails (closed-form Kepler arcs) or
integrated (numerical steps). The mode is a tagged variant:

    PropagationMode = OnRails(elements, state) | Integrated(state)

Both variants carry the body-relative state at their last evaluation,
so converting between them never loses the current position.
"""

import numpy as np
from dataclasses import dataclass
from typing import Union

from ..orbits.kepler import OrbitalElements, elements_from_state, state_from_elements


@dataclass(frozen=True, eq=False)
class StateVector:
    """Body-relative position and velocity at a time."""
    position: np.ndarray
    velocity: np.ndarray
    time_s: float

    @classmethod
    def create(cls, position, velocity, time_s: float) -> 'StateVector':
        return cls(
            position=np.array(position, dtype=float),
            velocity=np.array(velocity, dtype=float),
            time_s=float(time_s),
        )


@dataclass(frozen=True, eq=False)
class Integrated:
    """Numerically integrated flight."""
    state: StateVector

    name = 'integrated'


@dataclass(frozen=True, eq=False)
class OnRails:
    """Keplerian coast; state is derived from the elements."""
    elements: OrbitalElements
    state: StateVector

    name = 'on_rails'

    def evaluate(self, mu: float, t: float) -> 'OnRails':
        """The same arc with its state evaluated at time t."""
        r, v = state_from_elements(self.elements, mu, t)
        return OnRails(self.elements, StateVector(r, v, float(t)))


PropagationMode = Union[OnRails, Integrated]


def to_on_rails(mode: PropagationMode, mu: float) -> OnRails:
    """
    Freeze the current state into orbital elements.

    Raises:
        ValueError: The state has no usable elements (radial, parabolic)
    """
    if isinstance(mode, OnRails):
        return mode
    state = mode.state
    elements = elements_from_state(state.position, state.velocity, mu, epoch_s=state.time_s)
    return OnRails(elements, state)


def to_integrated(mode: PropagationMode) -> Integrated:
    """Hand the current state to the numerical integrator."""
    if isinstance(mode, Integrated):
        return mode
    return Integrated(mode.state)
