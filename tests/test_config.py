import pytest

from sdb.config import ClusterConfig, Config, load_config, parse_config

FULL = """
store:
  engine: memory
  path: ./db
server:
  grpc_port: 10000
  http_port: 11000
  rate: 30000
cluster:
  node_id: 1
  path: ./cluster
  address: 127.0.0.1:12000
  master: ""
  timeout: 10000
  join: true
extra: ignored
"""


def test_parse_full_config():
    config = parse_config(FULL)
    assert config.store.engine == "memory"
    assert config.store.path == "./db"
    assert config.server.grpc_port == 10000
    assert config.server.http_port == 11000
    assert config.server.rate == 30000
    assert config.cluster.node_id == 1
    assert config.cluster.address == "127.0.0.1:12000"
    assert config.cluster.master == ""
    assert config.cluster.timeout == 10000
    assert config.cluster.join is True


def test_empty_text_gives_defaults():
    assert parse_config("") == Config()


def test_missing_section_gives_defaults():
    config = parse_config("store:\n  engine: memory\n")
    assert config.cluster == ClusterConfig()
    assert config.store.engine == "memory"


def test_wrong_int_type_rejected():
    with pytest.raises(ValueError):
        parse_config("server:\n  grpc_port: abc\n")


def test_wrong_bool_type_rejected():
    with pytest.raises(ValueError):
        parse_config("cluster:\n  join: 3\n")


def test_non_mapping_rejected():
    with pytest.raises(ValueError):
        parse_config("- a\n- b\n")


def test_negative_node_id_rejected():
    with pytest.raises(ValueError):
        parse_config("cluster:\n  node_id: -1\n")


def test_load_config_from_file(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(FULL, encoding="utf-8")
    assert load_config(path) == parse_config(FULL)


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yml")