from __future__ import annotations

import yaml

from spinup.model.configs import default_prom_config, default_prom_remote_write_config
from spinup.model.nodes import (
    FILE_SD_NAME,
    exporter,
    querier_with_file_sd,
    querier_with_store_flags,
    receiver,
    scraper,
    sidecar,
)
from spinup.model.ports import prom_http, sidecar_grpc
from spinup.model.topology import Role


def test_default_prom_config_shape() -> None:
    cfg = yaml.safe_load(default_prom_config("prom-ha", 1, "localhost:9091"))
    assert cfg["global"]["external_labels"] == {"prometheus": "prom-ha", "replica": "1"}
    job = cfg["scrape_configs"][0]
    assert job["job_name"] == "prometheus"
    assert job["scrape_interval"] == "1s"
    assert job["static_configs"] == [{"targets": ["localhost:9091"]}]


def test_remote_write_config_shape() -> None:
    cfg = yaml.safe_load(
        default_prom_remote_write_config("localhost:9301", "http://localhost:18091/api/v1/receive")
    )
    assert cfg["scrape_configs"][0]["job_name"] == "node"
    assert cfg["scrape_configs"][0]["static_configs"][0]["targets"] == ["localhost:9301"]
    assert cfg["remote_write"] == [{"url": "http://localhost:18091/api/v1/receive"}]
    assert "global" not in cfg


def test_scraper_command_and_config_file() -> None:
    node = scraper(2, "x: 1\n", [prom_http(1)])
    assert node.key == (Role.SCRAPER, 2)
    assert node.config_name == "prometheus.yml"
    assert node.command[0] == "{prometheus}"
    assert "--config.file={dir}/prometheus.yml" in node.command
    assert f"--web.listen-address={prom_http(2)}" in node.command
    assert node.depends_on == (prom_http(1),)


def test_sidecar_points_at_its_scraper() -> None:
    node = sidecar(3)
    assert f"--prometheus.url=http://{prom_http(3)}" in node.command
    assert "--tsdb.path={root}/scraper-3/data" in node.command
    assert f"--grpc-address={sidecar_grpc(3)}" in node.command
    assert node.depends_on == (prom_http(3),)


def test_querier_static_flags_lists_every_store() -> None:
    stores = (sidecar_grpc(1), sidecar_grpc(2))
    node = querier_with_store_flags(1, "replica", *stores)
    assert "--query.replica-label=replica" in node.command
    assert [a for a in node.command if a.startswith("--store=")] == [f"--store={s}" for s in stores]
    assert node.files == {}


def test_querier_file_sd_writes_target_file() -> None:
    stores = (sidecar_grpc(1), sidecar_grpc(2))
    node = querier_with_file_sd(1, "replica", *stores)
    assert not any(a.startswith("--store=") for a in node.command)
    assert f"--store.sd-files={{dir}}/{FILE_SD_NAME}" in node.command
    assert yaml.safe_load(node.files[FILE_SD_NAME]) == [{"targets": list(stores)}]
    assert node.depends_on == stores


def test_receiver_labels_and_ports() -> None:
    node = receiver(1, {"receive": "true", "replica": "1"})
    assert '--label=receive="true"' in node.command
    assert '--label=replica="1"' in node.command
    assert "--remote-write.address=localhost:18091" in node.command
    assert len(node.serves) == 3


def test_exporter() -> None:
    node = exporter(1)
    assert node.command == ("{node_exporter}", "--web.listen-address=localhost:9301")
