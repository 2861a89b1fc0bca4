import io
import json

import pytest

from praasctl.backend import BackendType
from praasctl.config import (
    BackendDockerConfig,
    BackendFargateConfig,
    Config,
    DownScalerConfig,
    HTTPServerConfig,
    TCPServerConfig,
    WorkersConfig,
    parse_args,
)
from praasctl.errors import InvalidConfigurationError


def _base(**extra):
    data = {
        "verbose": True,
        "backend-type": "docker",
        "ip-address": "10.1.1.1",
        "http-client-io-threads": 3,
    }
    data.update(extra)
    return data


def test_minimal_config_keeps_section_defaults():
    cfg = Config.from_dict(_base())
    assert cfg.verbose is True
    assert cfg.backend_type is BackendType.DOCKER
    assert cfg.backend == BackendDockerConfig()
    assert cfg.public_ip_address == "10.1.1.1"
    assert cfg.http_client_io_threads == 3
    assert cfg.http == HTTPServerConfig()
    assert cfg.workers == WorkersConfig()
    assert cfg.down_scaler == DownScalerConfig()
    assert cfg.tcpserver == TCPServerConfig()


def test_full_config_from_stream():
    data = _base(
        backend={"address": "docker-host", "port": 7000},
        http={"threads": 4, "port": 9100, "enable_ssl": False},
        workers={"threads": 6},
        downscaler={"polling_interval": 5, "swapping_threshold": 50},
        tcpserver={"port": 7100, "io_threads": 2},
    )
    cfg = Config.from_stream(io.StringIO(json.dumps(data)))
    assert cfg.backend == BackendDockerConfig(address="docker-host", port=7000)
    assert (cfg.http.threads, cfg.http.port, cfg.http.enable_ssl) == (4, 9100, False)
    assert cfg.http.ssl_server_key is None
    assert cfg.workers.threads == 6
    assert cfg.down_scaler == DownScalerConfig(polling_interval=5, swapping_threshold=50)
    assert cfg.tcpserver == TCPServerConfig(port=7100, io_threads=2)


def test_ssl_requires_key_and_cert():
    cfg = HTTPServerConfig.from_dict(
        {"threads": 1, "port": 1, "enable_ssl": True,
         "ssl_server_key": "server.key", "ssl_server_cert": "server.crt"}
    )
    assert cfg.ssl_server_key == "server.key"
    assert cfg.ssl_server_cert == "server.crt"
    with pytest.raises(InvalidConfigurationError):
        HTTPServerConfig.from_dict({"threads": 1, "port": 1, "enable_ssl": True})


def test_http_default_payload_size():
    assert HTTPServerConfig().max_payload_size == 1024 * 1024


def test_fargate_backend():
    cfg = Config.from_dict(_base(**{"backend-type": "aws_fargate",
                                    "backend": {"fargate_config": "fargate.json"}}))
    assert cfg.backend_type is BackendType.AWS_FARGATE
    assert cfg.backend == BackendFargateConfig(fargate_config="fargate.json")


def test_unknown_backend_has_no_backend_config():
    cfg = Config.from_dict(_base(**{"backend-type": "something"}))
    assert cfg.backend_type is BackendType.NONE
    assert cfg.backend is None


@pytest.mark.parametrize("missing", ["verbose", "backend-type", "ip-address",
                                     "http-client-io-threads"])
def test_missing_required_field(missing):
    data = _base()
    del data[missing]
    with pytest.raises(InvalidConfigurationError):
        Config.from_dict(data)


def test_invalid_json_raises():
    with pytest.raises(InvalidConfigurationError):
        Config.from_stream(io.StringIO("{not json"))


def test_defaults():
    cfg = Config.defaults()
    assert cfg.backend_type is BackendType.DOCKER
    assert cfg.backend == BackendDockerConfig(address="127.0.0.1", port=8080)
    assert cfg.public_ip_address == "127.0.0.1"
    assert cfg.http_client_io_threads == 1


def test_parse_args_without_config_gives_defaults():
    assert parse_args([]) == Config.defaults()


def test_parse_args_reads_file(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps(_base(workers={"threads": 9})))
    cfg = parse_args(["--config", str(path)])
    assert cfg.workers.threads == 9
    assert cfg.public_ip_address == "10.1.1.1"


def test_parse_args_missing_file_exits(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        parse_args(["-c", str(tmp_path / "absent.json")])
    assert excinfo.value.code == 1