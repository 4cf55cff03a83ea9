import json

import pytest

from config_forge.cli.config_forge_cli import build_parser, main, resolve_schema
from config_forge.configs.config_exceptions import ConfigError
from config_forge.log.log_writer import BUILD_VARIANT_EXT

import cli_settings


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CONFIG_FORGE_LOGS_PATH", raising=False)
    monkeypatch.delenv("CONFIG_FORGE_LOG_LEVEL", raising=False)
    cli_settings.CliSettings.set_defaults()


def test_resolve_schema():
    assert resolve_schema("cli_settings:CliSettings") is cli_settings.CliSettings


@pytest.mark.parametrize(
    "reference",
    ["cli_settings", "no_such_module:Thing", "cli_settings:Missing", "cli_settings:NOT_A_CLASS"],
)
def test_resolve_schema_rejects_bad_references(reference):
    with pytest.raises(ConfigError):
        resolve_schema(reference)


def test_regenerate_writes_defaults(tmp_path, capsys):
    target = tmp_path / "out" / "cli.json"
    cli_settings.CliSettings.retries = 10

    assert main(["regenerate", "cli_settings:CliSettings", str(target)]) == 0
    assert json.loads(target.read_text(encoding="utf-8")) == {
        "name": "cli",
        "retries": 3,
        "hosts": ["alpha"],
    }
    assert "regenerated" in capsys.readouterr().out


def test_regenerate_without_defaults_fails(tmp_path):
    target = tmp_path / "none.json"
    assert main(["regenerate", "cli_settings:NoDefaults", str(target)]) == 1
    assert not target.exists()


def test_normalize_rewrites_canonical_form(tmp_path, capsys):
    target = tmp_path / "cli.json"
    target.write_text(
        '{"name": "edited", "retries": 5, "hosts": ["a", "b",],}', encoding="utf-8"
    )

    assert main(["normalize", "cli_settings:CliSettings", str(target)]) == 0
    assert target.read_text(encoding="utf-8") == json.dumps(
        {"name": "edited", "retries": 5, "hosts": ["a", "b"]}, indent=2
    ) + "\n"
    assert "loaded" in capsys.readouterr().out


def test_show_prints_document(tmp_path, capsys):
    target = tmp_path / "cli.json"
    assert main(["show", "cli_settings:CliSettings", str(target)]) == 0

    out = capsys.readouterr().out
    assert "regenerated_missing" in out
    assert '"retries": 3' in out
    assert target.is_file()


def test_bad_schema_returns_error(tmp_path, capsys):
    assert main(["show", "cli_settings:Missing", str(tmp_path / "x.json")]) == 1
    assert "Error:" in capsys.readouterr().err


def test_log_command_writes_line(tmp_path, capsys):
    assert main(["log", "deploy finished", "-c", "Deploy", "-l", "WARN"]) == 0

    log_file = tmp_path / "logs" / f"0000current{BUILD_VARIANT_EXT}"
    last = log_file.read_text(encoding="utf-8").splitlines()[-1]
    assert "[WARN   ][Deploy" in last
    assert last.endswith("] deploy finished")
    assert (tmp_path / "config" / "logger.json").is_file()
    assert str(log_file.relative_to(tmp_path)) in capsys.readouterr().out


def test_log_level_choices():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["log", "x", "--level", "LOUD"])
