"""
Simulation Scenarios
====================

Pre-configured scenarios exercising staging, time warp and SOI transitions.
"""

from .staging_ascent import StagingAscentConfig, StagingAscentScenario
from .warp_coast import WarpCoastConfig, WarpCoastScenario
from .lunar_transfer import LunarTransferConfig, LunarTransferScenario

__all__ = [
    'StagingAscentConfig',
    'StagingAscentScenario',
    'WarpCoastConfig',
    'WarpCoastScenario',
    'LunarTransferConfig',
    'LunarTransferScenario',
]
