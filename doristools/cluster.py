"""Parsing of ``SHOW FRONTENDS`` / ``SHOW BACKENDS`` output and cluster data."""

from __future__ import annotations

import dataclasses
import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from doristools import fs_utils
from doristools.tools import ConfigError

SYSTEM_DATABASES = ("__internal_schema", "mysql", "information_schema")

_ROW_MARKER = "***************************"
_PORT_RE = re.compile(r"\+?[0-9]+")


def _lines(text: str) -> list[str]:
    parts = text.split("\n")
    if parts and parts[-1] == "":
        parts.pop()
    return [p[:-1] if p.endswith("\r") else p for p in parts]


def split_into_blocks(output: str) -> list[str]:
    """Split vertical (``\\G``) MySQL output into one block of text per row."""
    blocks: list[str] = []
    current: list[str] = []
    for line in _lines(output):
        if _ROW_MARKER in line and "row" in line:
            text = "".join(current)
            if text.strip():
                blocks.append(text)
            current = []
        current.append(line + "\n")
    text = "".join(current)
    if text.strip():
        blocks.append(text)
    return blocks


def parse_key_value(line: str) -> tuple[str, str] | None:
    """Split ``key: value`` at the first colon; None without a key."""
    key, sep, value = line.partition(":")
    if not sep:
        return None
    key = key.strip()
    if not key:
        return None
    return key, value.strip()


def parse_key_value_pairs(block: str) -> dict[str, str]:
    """Collect every ``key: value`` line of a block into a dict."""
    fields: dict[str, str] = {}
    for raw in _lines(block):
        line = raw.strip()
        if not line or _ROW_MARKER in line:
            continue
        pair = parse_key_value(line)
        if pair is not None:
            fields[pair[0]] = pair[1]
    return fields


def _port(value: str) -> int | None:
    value = value.strip()
    if not _PORT_RE.fullmatch(value):
        return None
    number = int(value)
    return number if number <= 0xFFFF else None


class _MissingField(Exception):
    pass


class _Fields:
    def __init__(self, fields: dict[str, str]) -> None:
        self._fields = fields

    def text(self, key: str) -> str:
        try:
            return self._fields[key].strip()
        except KeyError:
            raise _MissingField(key) from None

    def port(self, key: str) -> int:
        number = _port(self.text(key))
        if number is None:
            raise _MissingField(key)
        return number

    def flag(self, key: str) -> bool:
        return self.text(key) == "true"


@dataclass
class Frontend:
    """A frontend node as reported by ``SHOW FRONTENDS``."""

    name: str
    host: str
    edit_log_port: int
    http_port: int
    query_port: int
    rpc_port: int
    role: str
    is_master: bool
    cluster_id: str
    alive: bool
    version: str

    @classmethod
    def parse_from_block(cls, block: str) -> Frontend | None:
        """Build a frontend from one row block; None if a field is missing or bad."""
        f = _Fields(parse_key_value_pairs(block))
        try:
            return cls(
                name=f.text("Name"),
                host=f.text("Host"),
                edit_log_port=f.port("EditLogPort"),
                http_port=f.port("HttpPort"),
                query_port=f.port("QueryPort"),
                rpc_port=f.port("RpcPort"),
                role=f.text("Role"),
                is_master=f.flag("IsMaster"),
                cluster_id=f.text("ClusterId"),
                alive=f.flag("Alive"),
                version=f.text("Version"),
            )
        except _MissingField:
            return None


def parse_tag_info(tag_str: str) -> str | None:
    """Reduce a backend Tag to its cloud cluster fields, as compact JSON."""
    if not tag_str or tag_str == "{}":
        return None
    try:
        data = json.loads(tag_str)
    except ValueError:
        return tag_str
    if not isinstance(data, dict):
        return tag_str

    extracted: dict[str, Any] = {}
    if "cloud_cluster_id" in data:
        extracted["cloud_cluster_id"] = data["cloud_cluster_id"]
    elif "cloud_unique_id" in data:
        extracted["cloud_cluster_id"] = data["cloud_unique_id"]

    if "cloud_cluster_name" in data:
        extracted["cloud_cluster_name"] = data["cloud_cluster_name"]
    elif "compute_group_name" in data:
        extracted["cloud_cluster_name"] = data["compute_group_name"]

    if "location" in data:
        extracted["location"] = data["location"]

    if not extracted:
        return tag_str
    return json.dumps(extracted, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


@dataclass
class Backend:
    """A backend node as reported by ``SHOW BACKENDS``."""

    backend_id: str
    host: str
    heartbeat_port: int
    be_port: int
    http_port: int
    brpc_port: int
    alive: bool
    version: str
    status: str
    node_role: str
    tag: str | None = None

    @classmethod
    def parse_from_block(cls, block: str) -> Backend | None:
        """Build a backend from one row block; None if a field is missing or bad."""
        fields = parse_key_value_pairs(block)
        f = _Fields(fields)
        try:
            backend = cls(
                backend_id=f.text("BackendId"),
                host=f.text("Host"),
                heartbeat_port=f.port("HeartbeatPort"),
                be_port=f.port("BePort"),
                http_port=f.port("HttpPort"),
                brpc_port=f.port("BrpcPort"),
                alive=f.flag("Alive"),
                version=f.text("Version"),
                status=f.text("Status"),
                node_role=f.text("NodeRole"),
            )
        except _MissingField:
            return None
        if "Tag" in fields:
            backend.tag = parse_tag_info(fields["Tag"].strip())
        return backend


def parse_frontends(output: str) -> list[Frontend]:
    """Parse every frontend row in ``SHOW FRONTENDS \\G`` output."""
    return [fe for fe in map(Frontend.parse_from_block, split_into_blocks(output)) if fe]


def parse_backends(output: str) -> list[Backend]:
    """Parse every backend row in ``SHOW BACKENDS \\G`` output."""
    return [be for be in map(Backend.parse_from_block, split_into_blocks(output)) if be]


def _without_none(item: Any) -> dict[str, Any]:
    return {k: v for k, v in dataclasses.asdict(item).items() if v is not None}


@dataclass
class ClusterInfo:
    """Frontends and backends of one cluster."""

    frontends: list[Frontend] = field(default_factory=list)
    backends: list[Backend] = field(default_factory=list)

    def validate(self) -> None:
        """Raise ConfigError if required node information is missing."""
        if not self.frontends:
            raise ConfigError("No frontend nodes found")
        checks = [
            ("Frontend", self.frontends, ("host", "cluster_id", "version")),
            ("Backend", self.backends, ("backend_id", "host", "version")),
        ]
        for kind, nodes, names in checks:
            for index, node in enumerate(nodes):
                for name in names:
                    if not getattr(node, name):
                        raise ConfigError(f"{kind} {index} has an empty {name}")

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form of the cluster, without empty optional fields."""
        return {
            "frontends": [_without_none(fe) for fe in self.frontends],
            "backends": [_without_none(be) for be in self.backends],
        }

    def save_to_file(self, file_path: Path | None = None) -> Path:
        """Validate and write the cluster as TOML; returns the file written."""
        self.validate()
        if file_path is None:
            file_path = fs_utils.get_user_config_dir() / "clusters.toml"
        file_path = Path(file_path)
        fs_utils.save_toml_to_file(self.to_dict(), file_path)
        return file_path