"""
Kevlar - Optimistic Sync Committee Light Client

Determines the current validator sync committee of a proof-of-stake chain by
playing untrusted provers against each other instead of verifying every
period from genesis.

Main Components:
- lightclient: dispute resolution, tournament and the genesis-to-head sync loop
- core: configuration, exceptions, logging and validator key helpers
"""

__version__ = "0.1.0"
__author__ = "Kevlar Development Team"

__all__ = []
