from __future__ import annotations

from typing import Dict, Mapping, Tuple

from spinup.model.topology import Role

MAX_NODE_ID = 99

HTTP = "http"
GRPC = "grpc"
REMOTE_WRITE = "remote_write"

# port = base + node id; every range spans MAX_NODE_ID + 1 ports.
DEFAULT_PORT_BASES: Dict[Role, Dict[str, int]] = {
    Role.SCRAPER: {HTTP: 9090},
    Role.EXPORTER: {HTTP: 9300},
    Role.RECEIVER: {REMOTE_WRITE: 18090, GRPC: 18190, HTTP: 18290},
    Role.SIDECAR: {GRPC: 19090, HTTP: 19190},
    Role.QUERIER: {HTTP: 19490, GRPC: 19590},
}

# Port kind other nodes use to reach a role when none is named.
PRIMARY_KIND: Dict[Role, str] = {
    Role.SCRAPER: HTTP,
    Role.EXPORTER: HTTP,
    Role.RECEIVER: GRPC,
    Role.SIDECAR: GRPC,
    Role.QUERIER: HTTP,
}


class PortAllocator:
    """Maps (role, id, kind) to a fixed ``host:port`` so configs can cross-reference
    nodes before anything is started."""

    def __init__(
        self,
        host: str = "localhost",
        bases: Mapping[Role, Mapping[str, int]] | None = None,
    ) -> None:
        self.host = host
        self._bases = {role: dict(kinds) for role, kinds in (bases or DEFAULT_PORT_BASES).items()}
        _check_disjoint(self._bases)

    def port_for(self, role: Role, node_id: int, kind: str | None = None) -> int:
        role = Role(role)
        if not isinstance(node_id, int) or isinstance(node_id, bool):
            raise ValueError(f"node id must be int: {node_id!r}")
        if node_id < 1 or node_id > MAX_NODE_ID:
            raise ValueError(f"node id out of range 1..{MAX_NODE_ID}: {node_id}")
        kinds = self._bases.get(role, {})
        kind = kind or PRIMARY_KIND[role]
        if kind not in kinds:
            raise ValueError(f"{role.value} has no {kind} port")
        return kinds[kind] + node_id

    def address_for(self, role: Role, node_id: int, kind: str | None = None) -> str:
        return f"{self.host}:{self.port_for(role, node_id, kind)}"

    def addresses_for(self, role: Role, node_id: int) -> Tuple[str, ...]:
        kinds = self._bases.get(Role(role), {})
        return tuple(self.address_for(role, node_id, kind) for kind in kinds)


def _check_disjoint(bases: Mapping[Role, Mapping[str, int]]) -> None:
    spans = sorted(
        (base, role.value, kind) for role, kinds in bases.items() for kind, base in kinds.items()
    )
    for (lo, role_a, kind_a), (hi, role_b, kind_b) in zip(spans, spans[1:]):
        if lo + MAX_NODE_ID >= hi:
            raise ValueError(
                f"port ranges overlap: {role_a}/{kind_a}@{lo} and {role_b}/{kind_b}@{hi}"
            )


DEFAULT_ALLOCATOR = PortAllocator()


def prom_http_port(i: int) -> int:
    return DEFAULT_ALLOCATOR.port_for(Role.SCRAPER, i, HTTP)


def prom_http(i: int) -> str:
    return DEFAULT_ALLOCATOR.address_for(Role.SCRAPER, i, HTTP)


def sidecar_grpc(i: int) -> str:
    return DEFAULT_ALLOCATOR.address_for(Role.SIDECAR, i, GRPC)


def sidecar_http(i: int) -> str:
    return DEFAULT_ALLOCATOR.address_for(Role.SIDECAR, i, HTTP)


def query_http(i: int) -> str:
    return DEFAULT_ALLOCATOR.address_for(Role.QUERIER, i, HTTP)


def query_grpc(i: int) -> str:
    return DEFAULT_ALLOCATOR.address_for(Role.QUERIER, i, GRPC)


def receive_grpc(i: int) -> str:
    return DEFAULT_ALLOCATOR.address_for(Role.RECEIVER, i, GRPC)


def receive_http(i: int) -> str:
    return DEFAULT_ALLOCATOR.address_for(Role.RECEIVER, i, HTTP)


def receive_remote_write(i: int) -> str:
    return DEFAULT_ALLOCATOR.address_for(Role.RECEIVER, i, REMOTE_WRITE)


def remote_write_endpoint(i: int) -> str:
    return f"http://{receive_remote_write(i)}/api/v1/receive"


def node_exporter_http(i: int) -> str:
    return DEFAULT_ALLOCATOR.address_for(Role.EXPORTER, i, HTTP)
