from __future__ import annotations

from globalmind_quiz.workspace import cli


def test_init_reports_layout(data_home, capsys):
    code = cli.main([])

    out = capsys.readouterr().out
    assert code == 0
    assert f"Workspace ready at {data_home} (created)" in out
    for name in ("config", "logs", "leaderboard", "auth"):
        assert name in out
    assert data_home.is_dir()


def test_init_second_run_reports_existing(data_home, capsys):
    cli.main(["--quiet"])

    assert cli.main([]) == 0
    assert "(exists)" in capsys.readouterr().out


def test_init_custom_path(tmp_path, capsys):
    target = tmp_path / "elsewhere"

    assert cli.main(["--path", str(target)]) == 0
    assert str(target) in capsys.readouterr().out
    assert (target / "auth").is_dir()


def test_init_rejects_file_target(tmp_path, capsys):
    target = tmp_path / "occupied"
    target.write_text("not a directory", encoding="utf-8")

    assert cli.main(["--path", str(target)]) == 2
    assert capsys.readouterr().err.startswith("Error:")
