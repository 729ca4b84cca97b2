"""
Scenario Plots
==============

Headless matplotlib figures of recorded vehicle histories.
"""

import numpy as np
from pathlib import Path
from typing import List, Optional, Union

# Force headless plotting
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt


def plot_history(history: List,
                 title: str,
                 out_png: Optional[Union[str, Path]] = None):
    """
    Altitude, speed, mass and stage of one vehicle over time.

    Args:
        history: VehicleSnapshot list
        title: Figure title
        out_png: Save the figure here when given

    Returns:
        The matplotlib figure (None for an empty history)
    """
    if not history:
        return None

    t = np.array([s.time_s for s in history])
    radius_km = np.array([np.linalg.norm(s.position) for s in history]) / 1000.0
    speed = np.array([np.linalg.norm(s.velocity) for s in history])
    mass = np.array([s.mass_kg for s in history])
    stage = np.array([s.stage_index for s in history])

    fig, axs = plt.subplots(4, 1, figsize=(12, 10), sharex=True)
    fig.suptitle(title)

    axs[0].plot(t, radius_km)
    axs[0].set_ylabel("Radius (km)")
    axs[0].grid(True)

    axs[1].plot(t, speed)
    axs[1].set_ylabel("Speed (m/s)")
    axs[1].grid(True)

    axs[2].plot(t, mass)
    axs[2].set_ylabel("Mass (kg)")
    axs[2].grid(True)

    axs[3].step(t, stage, where="post")
    axs[3].set_ylabel("Stage")
    axs[3].set_xlabel("Time (s)")
    axs[3].grid(True)

    fig.tight_layout(rect=(0, 0, 1, 0.96))
    if out_png is not None:
        fig.savefig(out_png, dpi=160)
    return fig


def close(fig):
    if fig is not None:
        plt.close(fig)
