"""
Concurrencia: exhaustive verification of a concurrent resource-allocation model.

Tour groups enter a valley, ride a single-capacity cable car, visit a chain
of single-capacity villages joined by single-capacity trains, and leave.
The model is a set of finite-state processes composed in parallel; every
interleaving of their actions is explored.

Processes and composition::

    from concurrencia.process import Process, relabel, prefix, hide
    from concurrencia.compose import compose

Exploration and checking::

    from concurrencia.explorer import explore_process
    from concurrencia.safety import check_safety
    from concurrencia.progress import check_progress

The cable car / village model::

    from concurrencia.params import ModelConfig
    from concurrencia.verify import Verifier, verify_safety, verify_progress
"""

__version__ = "0.1.0"
