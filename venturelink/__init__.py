"""
VentureLink Core API
Investor <-> startup marketplace: interaction requests, paid nudges,
connections and criteria-based matching.

Architecture:
- MongoDB: every entity (users with typed profiles, requests, notifications)
- FastAPI: thin routes over the lifecycle services
"""

__version__ = "1.0.0"
