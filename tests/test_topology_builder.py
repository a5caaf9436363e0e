from __future__ import annotations

import pytest

from spinup.errors import BuildError
from spinup.model.ports import DEFAULT_ALLOCATOR
from spinup.model.topology import NodeSpec, Role, TopologyBuilder


def _node(role: Role, node_id: int, depends_on: tuple[str, ...] = ()) -> NodeSpec:
    return NodeSpec(
        role=role,
        id=node_id,
        depends_on=depends_on,
        serves=DEFAULT_ALLOCATOR.addresses_for(role, node_id),
    )


def test_build_preserves_insertion_order() -> None:
    spec = (
        TopologyBuilder()
        .add(_node(Role.QUERIER, 1))
        .add(_node(Role.SCRAPER, 2))
        .add(_node(Role.SCRAPER, 1))
        .build()
    )
    assert [n.name for n in spec] == ["querier-1", "scraper-2", "scraper-1"]
    assert spec.get(Role.SCRAPER, 2) is spec.nodes[1]
    assert spec.get(Role.RECEIVER, 1) is None


def test_build_rejects_duplicate_role_and_id() -> None:
    builder = TopologyBuilder().add(_node(Role.SIDECAR, 1)).add(_node(Role.SIDECAR, 1))
    with pytest.raises(BuildError, match="sidecar-1"):
        builder.build()


def test_same_id_different_role_is_allowed() -> None:
    spec = TopologyBuilder().add(_node(Role.SCRAPER, 1), _node(Role.SIDECAR, 1)).build()
    assert len(spec) == 2


def test_build_rejects_dangling_dependency() -> None:
    missing = DEFAULT_ALLOCATOR.address_for(Role.SIDECAR, 7)
    builder = TopologyBuilder().add(_node(Role.QUERIER, 1, depends_on=(missing,)))
    with pytest.raises(BuildError, match="unknown address"):
        builder.build()


def test_dependency_resolves_to_any_served_port() -> None:
    grpc = DEFAULT_ALLOCATOR.address_for(Role.RECEIVER, 1, "grpc")
    remote_write = DEFAULT_ALLOCATOR.address_for(Role.RECEIVER, 1, "remote_write")
    spec = (
        TopologyBuilder()
        .add(_node(Role.RECEIVER, 1))
        .add(_node(Role.QUERIER, 1, depends_on=(grpc,)))
        .add(_node(Role.SCRAPER, 4, depends_on=(remote_write,)))
        .build()
    )
    assert spec.addresses()[remote_write].name == "receiver-1"


def test_add_does_not_mutate_shared_prefix() -> None:
    prefix = TopologyBuilder().add(_node(Role.SCRAPER, 1))
    a = prefix.add(_node(Role.QUERIER, 1)).build()
    b = prefix.add(_node(Role.QUERIER, 2)).build()
    assert len(prefix.nodes) == 1
    assert [n.name for n in a] == ["scraper-1", "querier-1"]
    assert [n.name for n in b] == ["scraper-1", "querier-2"]


@pytest.mark.parametrize("bad_id", [0, -1, True, "1"])
def test_node_id_must_be_positive_int(bad_id) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(BuildError):
        NodeSpec(role=Role.SCRAPER, id=bad_id)


def test_role_accepts_plain_string() -> None:
    node = NodeSpec(role="exporter", id=3)  # type: ignore[arg-type]
    assert node.key == (Role.EXPORTER, 3)


def test_built_node_files_are_read_only() -> None:
    source = {"filesd.yaml": "- targets: []\n"}
    node = NodeSpec(role=Role.QUERIER, id=1, files=source)
    spec = TopologyBuilder().add(node).build()
    source["extra.yaml"] = "{}"
    assert dict(spec.nodes[0].files) == {"filesd.yaml": "- targets: []\n"}
    with pytest.raises(TypeError):
        spec.nodes[0].files["filesd.yaml"] = "tampered"  # type: ignore[index]
