"""CLI: analyze a local batch with a stub endpoint, session show, preset list, health, db init."""

import pytest
from typer.testing import CliRunner

from seotagger.ai.factory import set_model_endpoint
from seotagger.cli import app

pytestmark = [pytest.mark.slow]

runner = CliRunner()


def _session_id(output: str) -> str:
    for line in output.splitlines():
        if line.startswith("Analyzing "):
            return line.split("session ", 1)[1].split(" ", 1)[0]
    raise AssertionError(f"no session id in output: {output}")


def test_analyze_prints_results_and_persists(make_png, stub_endpoint):
    set_model_endpoint(stub_endpoint)
    first = make_png("first.png")
    second = make_png("second.png", color="blue")

    result = runner.invoke(app, ["analyze", str(first), str(second), "--session-name", "CLI batch", "--preset", "generic-seo"])

    assert result.exit_code == 0, result.output
    assert "2 completed, 0 failed, 0 not started" in result.output
    assert [call[0] for call in stub_endpoint.calls] == [str(first.resolve()), str(second.resolve())]

    shown = runner.invoke(app, ["session", "show", _session_id(result.output)])
    assert shown.exit_code == 0, shown.output
    assert "CLI batch" in shown.output


def test_analyze_directory_and_failures_still_exit_zero(make_png, stub_endpoint_factory, tmp_path):
    def handler(image_reference, prompt, model):
        if str(image_reference).endswith("b.png"):
            raise RuntimeError("backend rejected image")
        return stub_endpoint_factory._default(image_reference, prompt, model)

    endpoint = stub_endpoint_factory(handler)
    set_model_endpoint(endpoint)
    make_png("a.png")
    make_png("b.png")
    (tmp_path / "images" / "readme.txt").write_text("skip me")

    result = runner.invoke(app, ["analyze", str(tmp_path / "images"), "--prompt", "Tag this", "--workers", "2"])

    assert result.exit_code == 0, result.output
    assert "1 completed, 1 failed" in result.output
    assert {call[1] for call in endpoint.calls} == {"Tag this"}


def test_analyze_forensics_dumps_flight_log_on_failure(make_png, stub_endpoint_factory, tmp_path):
    def handler(image_reference, prompt, model):
        raise RuntimeError("boom")

    set_model_endpoint(stub_endpoint_factory(handler))
    result = runner.invoke(app, ["analyze", str(make_png("x.png")), "--forensics"])
    assert result.exit_code == 0, result.output
    assert "Flight log written to" in result.output
    assert list((tmp_path / "logs" / "forensics").glob("analyze_*.log"))


def test_analyze_misconfigured_endpoint_exits_1(make_png):
    result = runner.invoke(app, ["analyze", str(make_png("x.png"))])
    assert result.exit_code == 1
    assert "LM_BASE" in result.output


def test_analyze_rejects_non_image_and_unknown_preset(tmp_path, make_png, stub_endpoint):
    set_model_endpoint(stub_endpoint)
    text_file = tmp_path / "notes.txt"
    text_file.write_text("hi")
    assert runner.invoke(app, ["analyze", str(text_file)]).exit_code == 1
    assert runner.invoke(app, ["analyze", str(make_png("x.png")), "--preset", "nope"]).exit_code == 1
    assert stub_endpoint.calls == []


def test_preset_list_and_db_init():
    init = runner.invoke(app, ["db", "init"])
    assert init.exit_code == 0
    assert "Database initialized." in init.output
    result = runner.invoke(app, ["preset", "list"])
    assert result.exit_code == 0
    for name in ("Adobe Stock", "Shutterstock", "Generic SEO"):
        assert name in result.output


def test_health_exit_codes(stub_endpoint_factory):
    assert runner.invoke(app, ["health"]).exit_code == 1

    set_model_endpoint(stub_endpoint_factory(healthy=False))
    down = runner.invoke(app, ["health"])
    assert down.exit_code == 1
    assert "stub endpoint down" in down.output

    set_model_endpoint(stub_endpoint_factory())
    up = runner.invoke(app, ["health"])
    assert up.exit_code == 0
    assert "stub endpoint ready" in up.output


def test_session_show_unknown():
    result = runner.invoke(app, ["session", "show", "missing"])
    assert result.exit_code == 1
