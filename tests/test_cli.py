import json

import cli


def test_status_reports_both_probes(monkeypatch, capsys):
    seen = []

    def fake_check(url, timeout_s=2.0):
        seen.append(url)
        ready = not url.endswith("/ready")
        return ready, {"http_status": 200 if ready else 503}, 1.0

    monkeypatch.setattr(cli, "check_probe", fake_check)
    assert cli.main(["--api", "http://op:8080/", "status"]) == 1
    out = json.loads(capsys.readouterr().out)
    assert out["live"]["ok"] is True
    assert out["ready"]["ok"] is False
    assert seen == ["http://op:8080/", "http://op:8080/ready"]


def test_live_exit_code(monkeypatch, capsys):
    monkeypatch.setattr(cli, "check_probe", lambda url, timeout_s=2.0: (True, {"status": "alive"}, 0.5))
    assert cli.main(["live"]) == 0
    assert json.loads(capsys.readouterr().out)["status"] == "alive"
