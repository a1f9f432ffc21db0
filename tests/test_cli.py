import json

import pytest

from ambulatorio import cli, config


def test_init_and_query(tmp_path, capsys):
    db_file = str(tmp_path / "cli.db")
    cli.main(["--db", db_file, "init"])
    assert "seed completato" in capsys.readouterr().out

    cli.main(["--db", db_file, "query", json.dumps({"table": "session_types", "columns": "name"})])
    out = json.loads(capsys.readouterr().out)
    assert out["error"] is None
    assert len(out["data"]) == 3


def test_query_error_exits_non_zero(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--db", str(tmp_path / "cli.db"), "query", '{"table": "nope"}'])
    assert exc.value.code == 1
    assert "no such table" in capsys.readouterr().out


def test_invalid_descriptor(tmp_path):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--db", str(tmp_path / "cli.db"), "query", "{broken"])
    assert "Descriptor non valido" in str(exc.value.code)


@pytest.mark.parametrize("payload", ["[1]", '"patients"', "null"])
def test_non_object_descriptor(tmp_path, payload):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--db", str(tmp_path / "cli.db"), "query", payload])
    assert "Descriptor non valido" in str(exc.value.code)


def test_create_practitioner(tmp_path, capsys):
    db_file = str(tmp_path / "cli.db")
    cli.main([
        "--db", db_file, "create-practitioner",
        "--first-name", "Anna", "--last-name", "Verdi", "--email", "anna@studio.local",
    ])
    assert "Professionista creato" in capsys.readouterr().out

    with pytest.raises(SystemExit):
        cli.main([
            "--db", db_file, "create-practitioner",
            "--first-name", "Anna", "--last-name", "Verdi", "--email", "anna@studio.local",
        ])


def test_set_db_dir_and_db_path(tmp_path, capsys, app_data_dir):
    custom = tmp_path / "custom"
    custom.mkdir()
    cli.main(["set-db-dir", str(custom)])
    assert config.read_config()["database_dir"] == str(custom.resolve())

    capsys.readouterr()
    cli.main(["db-path"])
    assert capsys.readouterr().out.strip() == str(custom.resolve() / config.DB_FILENAME)

    cli.main(["set-db-dir"])
    assert "database_dir" not in config.read_config()
