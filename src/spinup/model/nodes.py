from __future__ import annotations

from typing import Iterable, Mapping

from spinup.model.configs import file_sd_config
from spinup.model.ports import DEFAULT_ALLOCATOR, GRPC, HTTP, REMOTE_WRITE, PortAllocator
from spinup.model.topology import NodeSpec, Role

FILE_SD_NAME = "filesd.yaml"


def scraper(
    i: int,
    config: str,
    depends_on: Iterable[str] = (),
    *,
    ports: PortAllocator = DEFAULT_ALLOCATOR,
) -> NodeSpec:
    return NodeSpec(
        role=Role.SCRAPER,
        id=i,
        config_text=config,
        config_name="prometheus.yml",
        depends_on=tuple(depends_on),
        command=(
            "{prometheus}",
            "--config.file={dir}/prometheus.yml",
            "--storage.tsdb.path={dir}/data",
            "--storage.tsdb.min-block-duration=2h",
            "--storage.tsdb.max-block-duration=2h",
            f"--web.listen-address={ports.address_for(Role.SCRAPER, i, HTTP)}",
            "--log.level=info",
        ),
        serves=ports.addresses_for(Role.SCRAPER, i),
    )


def sidecar(i: int, *, ports: PortAllocator = DEFAULT_ALLOCATOR) -> NodeSpec:
    """Sidecar for scraper ``i``; reads that scraper's TSDB directory."""
    prom = ports.address_for(Role.SCRAPER, i, HTTP)
    return NodeSpec(
        role=Role.SIDECAR,
        id=i,
        depends_on=(prom,),
        command=(
            "{thanos}",
            "sidecar",
            f"--debug.name=sidecar-{i}",
            f"--grpc-address={ports.address_for(Role.SIDECAR, i, GRPC)}",
            f"--http-address={ports.address_for(Role.SIDECAR, i, HTTP)}",
            f"--prometheus.url=http://{prom}",
            f"--tsdb.path={{root}}/{Role.SCRAPER.value}-{i}/data",
            "--log.level=debug",
        ),
        serves=ports.addresses_for(Role.SIDECAR, i),
    )


def _querier_args(i: int, replica_label: str, ports: PortAllocator) -> tuple[str, ...]:
    return (
        "{thanos}",
        "query",
        f"--debug.name=querier-{i}",
        f"--http-address={ports.address_for(Role.QUERIER, i, HTTP)}",
        f"--grpc-address={ports.address_for(Role.QUERIER, i, GRPC)}",
        f"--query.replica-label={replica_label}",
        "--log.level=debug",
    )


def querier_with_store_flags(
    i: int,
    replica_label: str,
    *stores: str,
    ports: PortAllocator = DEFAULT_ALLOCATOR,
) -> NodeSpec:
    return NodeSpec(
        role=Role.QUERIER,
        id=i,
        depends_on=stores,
        command=_querier_args(i, replica_label, ports) + tuple(f"--store={s}" for s in stores),
        serves=ports.addresses_for(Role.QUERIER, i),
    )


def querier_with_file_sd(
    i: int,
    replica_label: str,
    *stores: str,
    ports: PortAllocator = DEFAULT_ALLOCATOR,
) -> NodeSpec:
    return NodeSpec(
        role=Role.QUERIER,
        id=i,
        depends_on=stores,
        files={FILE_SD_NAME: file_sd_config(stores)},
        command=_querier_args(i, replica_label, ports)
        + (f"--store.sd-files={{dir}}/{FILE_SD_NAME}", "--store.sd-interval=5s"),
        serves=ports.addresses_for(Role.QUERIER, i),
    )


def receiver(
    i: int,
    labels: Mapping[str, str],
    *,
    ports: PortAllocator = DEFAULT_ALLOCATOR,
) -> NodeSpec:
    """Remote-write receiver; ``labels`` are attached to every ingested series."""
    return NodeSpec(
        role=Role.RECEIVER,
        id=i,
        command=(
            "{thanos}",
            "receive",
            f"--debug.name=receive-{i}",
            f"--grpc-address={ports.address_for(Role.RECEIVER, i, GRPC)}",
            f"--http-address={ports.address_for(Role.RECEIVER, i, HTTP)}",
            f"--remote-write.address={ports.address_for(Role.RECEIVER, i, REMOTE_WRITE)}",
            "--tsdb.path={dir}/data",
            "--log.level=debug",
            *(f'--label={key}="{value}"' for key, value in labels.items()),
        ),
        serves=ports.addresses_for(Role.RECEIVER, i),
    )


def exporter(i: int, *, ports: PortAllocator = DEFAULT_ALLOCATOR) -> NodeSpec:
    return NodeSpec(
        role=Role.EXPORTER,
        id=i,
        command=(
            "{node_exporter}",
            f"--web.listen-address={ports.address_for(Role.EXPORTER, i, HTTP)}",
        ),
        serves=ports.addresses_for(Role.EXPORTER, i),
    )
