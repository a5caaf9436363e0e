from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple

from spinup.errors import BuildError


class Role(str, Enum):
    SCRAPER = "scraper"
    SIDECAR = "sidecar"
    QUERIER = "querier"
    RECEIVER = "receiver"
    EXPORTER = "exporter"


NodeKey = Tuple[Role, int]


@dataclass(frozen=True)
class NodeSpec:
    """One participant of a topology.

    ``command`` is an argv template: ``{dir}`` expands to the node's working
    directory, ``{root}`` to the topology's, and binary placeholders such as
    ``{thanos}`` to the configured executables.
    """

    role: Role
    id: int
    config_text: str = ""
    depends_on: Tuple[str, ...] = ()
    command: Tuple[str, ...] = ()
    config_name: str = "config.yaml"
    files: Mapping[str, str] = field(default_factory=dict, hash=False)
    serves: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", Role(self.role))
        if isinstance(self.id, bool) or not isinstance(self.id, int) or self.id < 1:
            raise BuildError(f"node id must be a positive int: {self.id!r}")
        object.__setattr__(self, "depends_on", tuple(self.depends_on))
        object.__setattr__(self, "command", tuple(self.command))
        object.__setattr__(self, "serves", tuple(self.serves))
        object.__setattr__(self, "files", MappingProxyType(dict(self.files)))

    @property
    def key(self) -> NodeKey:
        return (self.role, self.id)

    @property
    def name(self) -> str:
        return f"{self.role.value}-{self.id}"


@dataclass(frozen=True)
class TopologySpec:
    nodes: Tuple[NodeSpec, ...]

    def __iter__(self) -> Iterator[NodeSpec]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, role: Role, node_id: int) -> Optional[NodeSpec]:
        for node in self.nodes:
            if node.key == (Role(role), node_id):
                return node
        return None

    def addresses(self) -> Dict[str, NodeSpec]:
        out: Dict[str, NodeSpec] = {}
        for node in self.nodes:
            for address in node.serves:
                out[address] = node
        return out


class TopologyBuilder:
    """Immutable builder: ``add`` returns a new builder and leaves this one as is,
    so a shared prefix can seed several topology variants."""

    def __init__(self, nodes: Tuple[NodeSpec, ...] = ()) -> None:
        self._nodes = tuple(nodes)

    def add(self, *nodes: NodeSpec) -> "TopologyBuilder":
        return TopologyBuilder(self._nodes + tuple(nodes))

    @property
    def nodes(self) -> Tuple[NodeSpec, ...]:
        return self._nodes

    def build(self) -> TopologySpec:
        counts = Counter(node.key for node in self._nodes)
        dups = sorted(f"{role.value}-{node_id}" for (role, node_id), n in counts.items() if n > 1)
        if dups:
            raise BuildError(f"duplicate node identity: {', '.join(dups)}")

        spec = TopologySpec(nodes=self._nodes)
        served = spec.addresses()
        for node in self._nodes:
            missing = [addr for addr in node.depends_on if addr not in served]
            if missing:
                raise BuildError(f"{node.name} depends on unknown address: {', '.join(missing)}")
        return spec
