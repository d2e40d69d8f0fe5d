import click.testing
import pytest

from vxilink.cli import cli
from vxilink.config import LinkConfig, save_link_config


@pytest.fixture
def cli_runner():
    return click.testing.CliRunner()


@pytest.fixture
def replies(monkeypatch):
    replies = {
        b"*IDN?": b"ACME,DMM-6,SN7,2.0\n",
        b":MEAS:VOLT?": b"+1.2345E+00\n",
        b":COUN?": b"17\n",
        b":DISP:DATA?": b"#800000005image\n",
        b":BAD?": b"error\n",
    }
    monkeypatch.setattr("vxilink.transport.mock.DEFAULT_REPLIES", replies)
    return replies


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "instruments.ini"
    save_link_config("dmm", LinkConfig(address="sim-dmm", backend="mock"), path)
    return path


MOCK = ["--address", "sim", "--backend", "mock"]


class TestLinkCommands:
    def test_query(self, cli_runner, replies):
        result = cli_runner.invoke(cli, ["query", "*IDN?", *MOCK])
        assert result.exit_code == 0
        assert "ACME,DMM-6,SN7,2.0" in result.output

    def test_write(self, cli_runner, replies):
        result = cli_runner.invoke(cli, ["write", "*RST", *MOCK])
        assert result.exit_code == 0
        assert "Sent '*RST' to sim" in result.output

    def test_value_long(self, cli_runner, replies):
        result = cli_runner.invoke(cli, ["value", ":COUN?", *MOCK])
        assert result.exit_code == 0
        assert result.output.strip().splitlines()[-1] == "17"

    def test_value_double(self, cli_runner, replies):
        result = cli_runner.invoke(cli, ["value", ":MEAS:VOLT?", "--double", *MOCK])
        assert result.exit_code == 0
        assert result.output.strip().splitlines()[-1] == "1.2345"

    def test_value_strict_failure(self, cli_runner, replies):
        result = cli_runner.invoke(cli, ["value", ":BAD?", *MOCK])
        assert result.exit_code == 1
        assert "Could not parse integer" in result.output

    def test_value_lenient(self, cli_runner, replies):
        result = cli_runner.invoke(cli, ["value", ":BAD?", "--lenient", *MOCK])
        assert result.exit_code == 0
        assert result.output.strip().splitlines()[-1] == "0"

    def test_fetch_block(self, cli_runner, replies, tmp_path):
        out = tmp_path / "screen.bin"
        result = cli_runner.invoke(
            cli, ["fetch-block", ":DISP:DATA?", "--out", str(out), *MOCK]
        )
        assert result.exit_code == 0
        assert out.read_bytes() == b"image"
        assert "Wrote 5 bytes" in result.output

    def test_log_file(self, cli_runner, replies, tmp_path):
        log_file = tmp_path / "vxilink.log"
        result = cli_runner.invoke(
            cli, ["query", "*IDN?", "-ll", "DEBUG", "--log-file", str(log_file), *MOCK]
        )
        assert result.exit_code == 0
        text = log_file.read_text()
        assert "Opened link 1 to sim" in text
        assert "Closing down client log." in text

    def test_timeout_reported(self, cli_runner, replies):
        result = cli_runner.invoke(cli, ["query", ":NOT:ANSWERED?", *MOCK])
        assert result.exit_code == 1
        assert "I/O timeout" in result.output

    def test_named_instrument(self, cli_runner, replies, config_path):
        result = cli_runner.invoke(
            cli, ["query", "*IDN?", "-i", "dmm", "--config-path", str(config_path)]
        )
        assert result.exit_code == 0
        assert "ACME,DMM-6,SN7,2.0" in result.output

    def test_unknown_instrument(self, cli_runner, config_path):
        result = cli_runner.invoke(
            cli, ["query", "*IDN?", "-i", "scope", "--config-path", str(config_path)]
        )
        assert result.exit_code == 2
        assert "No instrument named 'scope'" in result.output

    def test_address_required(self, cli_runner):
        result = cli_runner.invoke(cli, ["query", "*IDN?"])
        assert result.exit_code == 2
        assert "Must give either --address or --instrument" in result.output

    def test_invalid_backend(self, cli_runner):
        result = cli_runner.invoke(cli, ["query", "*IDN?", "-a", "sim", "-b", "gpib"])
        assert result.exit_code == 2


class TestConfigs:
    def test_list(self, cli_runner, config_path):
        result = cli_runner.invoke(cli, ["configs", "--config-path", str(config_path)])
        assert result.exit_code == 0
        assert "Configured instruments:" in result.output
        assert "dmm: sim-dmm (inst0, mock)" in result.output

    def test_empty(self, cli_runner, tmp_path):
        result = cli_runner.invoke(
            cli, ["configs", "--config-path", str(tmp_path / "none.ini")]
        )
        assert result.exit_code == 0
        assert "No instruments configured" in result.output

    def test_invalid_entry(self, cli_runner, tmp_path):
        path = tmp_path / "instruments.ini"
        path.write_text("[broken]\nbackend = mock\n")
        result = cli_runner.invoke(cli, ["configs", "--config-path", str(path)])
        assert result.exit_code == 0
        assert "broken: invalid" in result.output


def test_tree(cli_runner):
    result = cli_runner.invoke(cli, ["--tree"])
    assert result.exit_code == 0
    for name in ("query", "write", "value", "fetch-block", "configs"):
        assert f"└── {name}" in result.output
