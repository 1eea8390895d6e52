import json

import pytest

from doristools.cluster import (
    Backend,
    ClusterInfo,
    Frontend,
    parse_backends,
    parse_frontends,
    parse_key_value,
    parse_key_value_pairs,
    parse_tag_info,
    split_into_blocks,
)
from doristools.tools import ConfigError

FRONTEND_BLOCK = """
*************************** 1. row ***************************
              Name: fe_94c2c212_b35b_4407_aa42_b208f5f63df2
              Host: 192.168.0.1
       EditLogPort: 9010
          HttpPort: 8030
         QueryPort: 9030
           RpcPort: 9020
ArrowFlightSqlPort: -1
              Role: FOLLOWER
          IsMaster: true
         ClusterId: 2133959080
              Join: true
             Alive: true
 ReplayedJournalId: 480298
     LastStartTime: 2025-07-31 18:06:19
     LastHeartbeat: 2025-08-01 14:47:21
          IsHelper: true
            ErrMsg: 
           Version: doris-3.0.2
  CurrentConnected: Yes
"""

BACKEND_BLOCK = """
*************************** 1. row ***************************
              BackendId: 1751558294712
                   Host: 192.168.10.2
          HeartbeatPort: 9050
                 BePort: 9060
               HttpPort: 8040
               BrpcPort: 8060
     ArrowFlightSqlPort: -1
          LastStartTime: 2025-08-01 14:46:17
          LastHeartbeat: 2025-08-01 14:47:11
                  Alive: true
   SystemDecommissioned: false
              TabletNum: 255
       DataUsedCapacity: 6.599 MB
      TrashUsedCapacity: 0.000 
          AvailCapacity: 489.820 GB
          TotalCapacity: 3.437 TB
                UsedPct: 86.08 %
         MaxDiskUsedPct: 86.08 %
     RemoteUsedCapacity: 0.000 
                    Tag: {"location" : "default"}
                 ErrMsg: 
                Version: doris-3.0.2
                 Status: {"lastSuccessReportTabletsTime":"2025-08-01 14:46:22","lastStreamLoadTime":-1,"isQueryDisabled":false,"isLoadDisabled":false,"isActive":true,"currentFragmentNum":0,"lastFragmentUpdateTime":1754030801378}
HeartbeatFailureCounter: 0
               NodeRole: mix
               CpuCores: 96
                 Memory: 375.81 GB
"""

TWO_FRONTENDS = """
*************************** 1. row ***************************
              Name: fe_94c2c212_b35b_4407_aa42_b208f5f63df2
              Host: 192.168.0.1
       EditLogPort: 9010
          HttpPort: 8030
         QueryPort: 9030
           RpcPort: 9020
              Role: FOLLOWER
          IsMaster: true
         ClusterId: 2133959080
             Alive: true
           Version: doris-3.0.2
*************************** 2. row ***************************
              Name: fe_another_node
              Host: 192.168.0.2
       EditLogPort: 9010
          HttpPort: 8030
         QueryPort: 9030
           RpcPort: 9020
              Role: OBSERVER
          IsMaster: false
         ClusterId: 2133959080
             Alive: true
           Version: doris-3.0.2
"""


def test_frontend_parse_from_real_output():
    fe = Frontend.parse_from_block(FRONTEND_BLOCK)
    assert fe is not None
    assert fe.name == "fe_94c2c212_b35b_4407_aa42_b208f5f63df2"
    assert fe.host == "192.168.0.1"
    assert fe.edit_log_port == 9010
    assert fe.http_port == 8030
    assert fe.query_port == 9030
    assert fe.rpc_port == 9020
    assert fe.role == "FOLLOWER"
    assert fe.is_master is True
    assert fe.cluster_id == "2133959080"
    assert fe.alive is True
    assert fe.version == "doris-3.0.2"


def test_backend_parse_from_real_output():
    be = Backend.parse_from_block(BACKEND_BLOCK)
    assert be is not None
    assert be.backend_id == "1751558294712"
    assert be.host == "192.168.10.2"
    assert be.heartbeat_port == 9050
    assert be.be_port == 9060
    assert be.http_port == 8040
    assert be.brpc_port == 8060
    assert be.alive is True
    assert be.version == "doris-3.0.2"
    assert "lastSuccessReportTabletsTime" in be.status
    assert be.node_role == "mix"
    assert be.tag is not None
    assert "location" in be.tag
    assert json.loads(be.tag) == {"location": "default"}


def test_split_into_blocks():
    blocks = split_into_blocks(TWO_FRONTENDS)
    assert len(blocks) == 2
    assert "fe_94c2c212_b35b_4407_aa42_b208f5f63df2" in blocks[0]
    assert "192.168.0.1" in blocks[0]
    assert "FOLLOWER" in blocks[0]
    assert "fe_another_node" in blocks[1]
    assert "192.168.0.2" in blocks[1]
    assert "OBSERVER" in blocks[1]


def test_parse_frontends_from_output():
    fes = parse_frontends(TWO_FRONTENDS)
    assert [fe.host for fe in fes] == ["192.168.0.1", "192.168.0.2"]
    assert [fe.is_master for fe in fes] == [True, False]


def test_parse_backends_from_output():
    bes = parse_backends(BACKEND_BLOCK + BACKEND_BLOCK)
    assert len(bes) == 2
    assert all(be.http_port == 8040 for be in bes)


def test_parse_key_value_keeps_colons_in_value():
    assert parse_key_value("LastStartTime: 2025-07-31 18:06:19") == (
        "LastStartTime",
        "2025-07-31 18:06:19",
    )


@pytest.mark.parametrize("line", ["no separator", ": value only"])
def test_parse_key_value_rejects(line):
    assert parse_key_value(line) is None


def test_parse_key_value_pairs_skips_marker_and_blank():
    fields = parse_key_value_pairs(FRONTEND_BLOCK)
    assert fields["ErrMsg"] == ""
    assert fields["Role"] == "FOLLOWER"
    assert not any("*" in key for key in fields)


def test_frontend_missing_field_gives_none():
    block = FRONTEND_BLOCK.replace("           Version: doris-3.0.2\n", "")
    assert Frontend.parse_from_block(block) is None


def test_frontend_bad_port_gives_none():
    block = FRONTEND_BLOCK.replace("HttpPort: 8030", "HttpPort: 99999")
    assert Frontend.parse_from_block(block) is None


def test_backend_without_tag():
    block = BACKEND_BLOCK.replace('Tag: {"location" : "default"}', "Tag: {}")
    be = Backend.parse_from_block(block)
    assert be is not None
    assert be.tag is None


def test_parse_tag_info_maps_alternative_names():
    tag = parse_tag_info(
        '{"cloud_unique_id": "u1", "compute_group_name": "cg", "other": 1}'
    )
    assert json.loads(tag) == {"cloud_cluster_id": "u1", "cloud_cluster_name": "cg"}


def test_parse_tag_info_prefers_primary_names():
    tag = parse_tag_info(
        '{"cloud_cluster_id": "a", "cloud_unique_id": "b", '
        '"cloud_cluster_name": "n", "compute_group_name": "m"}'
    )
    assert json.loads(tag) == {"cloud_cluster_id": "a", "cloud_cluster_name": "n"}


def test_parse_tag_info_passthrough():
    assert parse_tag_info("not json") == "not json"
    assert parse_tag_info('{"other": 1}') == '{"other": 1}'
    assert parse_tag_info("") is None


def _cluster():
    return ClusterInfo(
        frontends=parse_frontends(FRONTEND_BLOCK),
        backends=parse_backends(BACKEND_BLOCK),
    )


def test_validate_requires_frontends():
    with pytest.raises(ConfigError) as info:
        ClusterInfo().validate()
    assert str(info.value) == "No frontend nodes found"


def test_validate_reports_empty_field():
    cluster = _cluster()
    cluster.backends[0].host = ""
    with pytest.raises(ConfigError) as info:
        cluster.validate()
    assert str(info.value) == "Backend 0 has an empty host"


def test_to_dict_omits_missing_tag():
    cluster = _cluster()
    cluster.backends[0].tag = None
    data = cluster.to_dict()
    assert "tag" not in data["backends"][0]
    assert data["frontends"][0]["query_port"] == 9030


def test_save_to_file_writes_toml(tmp_path):
    target = tmp_path / "cfg" / "clusters.toml"
    written = _cluster().save_to_file(target)
    assert written == target
    text = target.read_text()
    assert "[[frontends]]" in text
    assert "[[backends]]" in text
    assert 'host = "192.168.0.1"' in text


def test_save_to_file_validates_first(tmp_path):
    target = tmp_path / "clusters.toml"
    with pytest.raises(ConfigError):
        ClusterInfo().save_to_file(target)
    assert not target.exists()