"""Topology description: roles, node specs, addressing and generated configs."""

from spinup.model.ports import PortAllocator
from spinup.model.topology import NodeSpec, Role, TopologyBuilder, TopologySpec

__all__ = [
    "NodeSpec",
    "PortAllocator",
    "Role",
    "TopologyBuilder",
    "TopologySpec",
]
