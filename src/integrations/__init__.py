"""
Clients for external collaborators.

This package contains:
- The ZK Email prover (hosted proving function)
- The bounty factory contract reader
"""
