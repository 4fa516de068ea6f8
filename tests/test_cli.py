import pytest

from sdb.cli import main


def test_missing_config_file_fails(tmp_path, capsys):
    path = tmp_path / "absent.yml"
    assert main(["--config", str(path)]) == 1
    assert str(path) in capsys.readouterr().err


def test_directory_as_config_fails(tmp_path, capsys):
    assert main(["--config", str(tmp_path)]) == 1
    assert "cannot read config" in capsys.readouterr().err


def test_help_exits_cleanly(capsys):
    with pytest.raises(SystemExit) as info:
        main(["--help"])
    assert info.value.code == 0
    assert "--config" in capsys.readouterr().out


def test_unknown_option_is_rejected(capsys):
    with pytest.raises(SystemExit) as info:
        main(["--bogus"])
    assert info.value.code == 2
    assert "--bogus" in capsys.readouterr().err