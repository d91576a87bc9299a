"""PlanBook - namespaced record storage with group sharing.

Stores evaluation plans, rosters and other structured records in a
folder tree, finds them across older layouts, and shares them with
groups joined by a six-character code.
"""

__version__ = "0.1.0"

from planbook.app import PlanBookServices, create_services

__all__ = ["PlanBookServices", "create_services", "__version__"]
