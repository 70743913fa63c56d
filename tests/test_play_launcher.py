from geocoins.cli.play import main


def test_play_launcher_runs_pygame_viewer_by_default(monkeypatch) -> None:
    captured = {}

    def fake_run(**kwargs):
        captured.update(kwargs)
        return 0

    monkeypatch.setattr("geocoins.cli.play.run_pygame_viewer", fake_run)

    result = main(["--headless"])

    assert result == 0
    assert captured == {"config_path": "content/config/default_game.json", "headless": True}


def test_play_launcher_honors_headless_env(monkeypatch) -> None:
    captured = {}

    def fake_run(**kwargs):
        captured.update(kwargs)
        return 0

    monkeypatch.setattr("geocoins.cli.play.run_pygame_viewer", fake_run)
    monkeypatch.setenv("GEOCOINS_HEADLESS", "yes")

    assert main(["--config", "custom.json"]) == 0
    assert captured == {"config_path": "custom.json", "headless": True}


def test_play_launcher_ascii_mode_uses_terminal_demo(monkeypatch) -> None:
    calls = []

    monkeypatch.setattr("geocoins.cli.play.run_demo", calls.append)
    monkeypatch.setattr("geocoins.cli.play.run_pygame_viewer", lambda **_: 1)

    assert main(["--ascii"]) == 0
    assert calls == ["content/config/default_game.json"]
