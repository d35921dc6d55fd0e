"""Integration-style tests for the matchsim CLI wiring."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Iterator

import polars as pl
import pytest

from matchsim import cli
from matchsim.acquisition import GeminiMatchDataProvider
from matchsim.commentary import GeminiCommentaryGenerator
from matchsim.config import reset_config, update_config


@pytest.fixture()
def payload_file(tmp_path: Path, match_payload: Dict[str, Any]) -> Path:
    path = tmp_path / "fixture.json"
    path.write_text(json.dumps(match_payload), encoding="utf-8")
    return path


@pytest.fixture()
def no_config(tmp_path: Path) -> list[str]:
    return ["--config", str(tmp_path / "missing.yaml"), "--log-level", "WARNING"]


@pytest.mark.parametrize("command", ["simulate", "summary"])
def test_cli_parser_registers_payload_subcommands(command: str) -> None:
    parser = cli._build_parser()
    args = parser.parse_args([command, "payload.json"])
    assert args.command == command
    assert asyncio.iscoroutinefunction(args.handler)


def test_cli_parser_registers_predict() -> None:
    args = cli._build_parser().parse_args(["predict", "Ajax", "PSV", "--no-commentary"])
    assert (args.team_a, args.team_b, args.no_commentary) == ("Ajax", "PSV", True)


def test_simulate_json_output(
    payload_file: Path, no_config: list[str], capsys: pytest.CaptureFixture[str]
) -> None:
    cli.main(["simulate", str(payload_file), *no_config, "--trials", "500", "--seed", "3", "--json"])
    document = json.loads(capsys.readouterr().out)

    assert document["totalSimulations"] == 500
    total = document["homeWinProb"] + document["drawProb"] + document["awayWinProb"]
    assert total == pytest.approx(100.0)
    assert document["mostLikelyScore"] == document["scoreDistribution"][0]["score"]
    assert len(document["scoreDistribution"]) <= 10


def test_simulate_is_reproducible_with_seed(
    payload_file: Path, no_config: list[str], capsys: pytest.CaptureFixture[str]
) -> None:
    argv = ["simulate", str(payload_file), *no_config, "--trials", "300", "--seed", "8", "--json"]
    cli.main(argv)
    first = capsys.readouterr().out
    cli.main(argv)
    assert capsys.readouterr().out == first


def test_simulate_table_and_csv(
    tmp_path: Path,
    payload_file: Path,
    no_config: list[str],
    capsys: pytest.CaptureFixture[str],
) -> None:
    csv_path = tmp_path / "scores.csv"
    cli.main(
        ["simulate", str(payload_file), *no_config, "--trials", "400", "--seed", "1", "--csv", str(csv_path)]
    )
    out = capsys.readouterr().out
    assert "Galatasaray vs Fenerbahce (n=400)" in out
    assert "Most likely score" in out

    frame = pl.read_csv(csv_path)
    assert frame.columns == ["score", "count", "prob"]
    assert frame["count"].sum() <= 400
    assert frame["count"].to_list() == sorted(frame["count"].to_list(), reverse=True)


def test_summary_prints_commentary_payload(
    payload_file: Path, no_config: list[str], capsys: pytest.CaptureFixture[str]
) -> None:
    cli.main(["summary", str(payload_file), *no_config, "--trials", "200", "--seed", "5"])
    summary = json.loads(capsys.readouterr().out)
    assert set(summary) == {"prob", "variance"}
    assert set(summary["prob"]) == {"home", "draw", "away"}


def test_invalid_payload_exits_with_message(
    tmp_path: Path, match_payload: Dict[str, Any], no_config: list[str]
) -> None:
    match_payload["teamB"]["defenseStrength"] = -10
    path = tmp_path / "bad.json"
    path.write_text(json.dumps(match_payload), encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["simulate", str(path), *no_config])
    assert "team_b.defense_strength=-10" in str(excinfo.value.code)


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_malformed_payload_exits(tmp_path: Path, no_config: list[str], content: str) -> None:
    path = tmp_path / "broken.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(SystemExit):
        cli.main(["summary", str(path), *no_config])


def test_missing_payload_file_exits(tmp_path: Path, no_config: list[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["simulate", str(tmp_path / "nowhere.json"), *no_config])
    assert "nowhere.json" in str(excinfo.value.code)


def test_predict_requires_api_key(no_config: list[str]) -> None:
    update_config(api_key=None)
    try:
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["predict", "Ajax", "PSV", *no_config])
        assert "MATCHSIM_API_KEY" in str(excinfo.value.code)
    finally:
        reset_config()


@pytest.mark.parametrize("verbose", [True, False])
def test_progress_messages_follow_verbose_setting(
    payload_file: Path,
    no_config: list[str],
    capsys: pytest.CaptureFixture[str],
    verbose: bool,
) -> None:
    update_config(verbose=verbose)
    try:
        cli.main(["simulate", str(payload_file), *no_config, "--trials", "100", "--json"])
    finally:
        reset_config()
    captured = capsys.readouterr()
    json.loads(captured.out)
    assert ("over 100 trials" in captured.err) is verbose


class ClosingHTTPClient:
    """Returns canned Gemini answers and records when it is closed."""

    def __init__(self, text: str | None) -> None:
        self._text = text
        self.closed = False

    async def post_json(self, url: str, payload: Any, **kwargs: Any) -> Dict[str, Any]:
        del url, payload, kwargs
        if self._text is None:
            raise ConnectionError("network down")
        return {"candidates": [{"content": {"parts": [{"text": self._text}]}}]}

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture()
def live_clients(
    monkeypatch: pytest.MonkeyPatch, match_payload: Dict[str, Any]
) -> Iterator[Dict[str, ClosingHTTPClient]]:
    clients = {
        "provider": ClosingHTTPClient(json.dumps(match_payload)),
        "commentary": ClosingHTTPClient("The hosts should control midfield."),
    }

    def _provider(config: Any, api_key: str) -> GeminiMatchDataProvider:
        provider = GeminiMatchDataProvider(api_key, client=clients["provider"])  # type: ignore[arg-type]
        provider.retry_attempts = 0
        return provider

    def _commentary(config: Any, api_key: str) -> GeminiCommentaryGenerator:
        generator = GeminiCommentaryGenerator(api_key, client=clients["commentary"])  # type: ignore[arg-type]
        generator.retry_attempts = 0
        return generator

    monkeypatch.setattr(cli, "create_match_data_provider", _provider)
    monkeypatch.setattr(cli, "create_commentary_generator", _commentary)
    update_config(api_key="key")
    yield clients
    reset_config()


def test_predict_closes_collaborator_sessions(
    live_clients: Dict[str, ClosingHTTPClient],
    no_config: list[str],
    capsys: pytest.CaptureFixture[str],
) -> None:
    cli.main(["predict", "Galatasaray", "Fenerbahce", *no_config, "--trials", "200", "--seed", "4"])
    out = capsys.readouterr().out
    assert "Galatasaray vs Fenerbahce (n=200)" in out
    assert "The hosts should control midfield." in out
    assert live_clients["provider"].closed
    assert live_clients["commentary"].closed


def test_predict_closes_sessions_when_fetch_fails(
    live_clients: Dict[str, ClosingHTTPClient], no_config: list[str]
) -> None:
    live_clients["provider"]._text = None
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["predict", "Galatasaray", "Fenerbahce", *no_config])
    assert "network down" in str(excinfo.value.code)
    assert live_clients["provider"].closed
    assert live_clients["commentary"].closed
