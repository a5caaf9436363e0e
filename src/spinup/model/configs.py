from __future__ import annotations

from typing import Iterable

from spinup.utils.io import dump_yaml_text


def default_prom_config(name: str, replica: int | str, target: str) -> str:
    return dump_yaml_text(
        {
            "global": {
                "external_labels": {
                    "prometheus": str(name),
                    "replica": str(replica),
                }
            },
            "scrape_configs": [
                {
                    "job_name": "prometheus",
                    "scrape_interval": "1s",
                    "static_configs": [{"targets": [target]}],
                }
            ],
        }
    )


def default_prom_remote_write_config(target: str, remote_write_url: str) -> str:
    return dump_yaml_text(
        {
            "scrape_configs": [
                {
                    "job_name": "node",
                    "scrape_interval": "1s",
                    "static_configs": [{"targets": [target]}],
                }
            ],
            "remote_write": [{"url": remote_write_url}],
        }
    )


def file_sd_config(addresses: Iterable[str]) -> str:
    return dump_yaml_text([{"targets": list(addresses)}])
