"""beaconforge: genesis ceremony and peer bootstrap for BeaconKit test networks.

Assembles per-node startup configuration, runs the distributed genesis
ceremony that aggregates premined validator deposits into one canonical
genesis, and wires the peer mesh once nodes are live.
"""

__version__ = "0.1.0"

from beaconforge.core.orchestrator import NetworkOrchestrator
from beaconforge.cli.app import app as cli

__all__ = ["NetworkOrchestrator", "cli", "__version__"]
