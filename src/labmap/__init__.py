"""
labmap

This package keeps an in memory directory of a lab's physical topology:
which cabinet a machine sits in, its slot, its serial console routing,
and its PDU outlet and KVM mapping.

We keep modules small and well separated:
core contains shared data structures and errors
parser turns raw configuration records into cabinet entries
sources contains configuration source adapters
registry holds the published snapshot and the machine ordering
refresh drives the periodic fetch, parse, publish cycle
service contains the query contract, the HTTP transport and the client
"""

__version__ = "0.1.0"
