from __future__ import annotations

import allure
import pytest
from click.testing import CliRunner

from async_fanout import __version__
from async_fanout.main import async_fanout

pytestmark = [
    allure.epic("Runtime"),
    allure.feature("Dispatch CLI"),
]

_OK_FAIL_OK = [
    "--worker",
    "OK1",
    "--worker",
    "FAIL",
    "--worker",
    "OK2",
    "--fail-worker",
    "FAIL",
    "--message",
    "m1",
    "--message",
    "m2",
    "--message",
    "m3",
]


@pytest.fixture()
def fast_workers(clean_env, monkeypatch):
    monkeypatch.setenv("ASYNC_FANOUT_WORKER_MAX_DELAY_SECONDS", "0")


def test_run_join_all_broadcasts_single_message(fast_workers) -> None:
    result = CliRunner().invoke(
        async_fanout,
        ["run", "--worker", "Hello", "--worker", "World", "--message", "hi"],
    )

    assert result.exit_code == 0
    assert "policy=join-all" in result.output
    assert "Result: Hello:HI World:HI" in result.output
    assert "Dispatch status: succeeded" in result.output


def test_run_fail_soft_prints_fallback_segments(fast_workers) -> None:
    result = CliRunner().invoke(
        async_fanout,
        ["run", "--policy", "fail-soft", "--fallback", "FALLBACK", *_OK_FAIL_OK],
    )

    assert result.exit_code == 0
    assert "Result: OK1:M1 FALLBACK OK2:M3" in result.output


def test_run_fail_soft_uses_configured_default_fallback(fast_workers, monkeypatch) -> None:
    monkeypatch.setenv("ASYNC_FANOUT_DEFAULT_FALLBACK", "N/A")

    result = CliRunner().invoke(async_fanout, ["run", "--policy", "fail-soft", *_OK_FAIL_OK])

    assert result.exit_code == 0
    assert "Result: OK1:M1 N/A OK2:M3" in result.output


def test_run_fail_partial_lists_survivors(fast_workers) -> None:
    result = CliRunner().invoke(async_fanout, ["run", "--policy", "fail-partial", *_OK_FAIL_OK])

    assert result.exit_code == 0
    assert "Results: 2" in result.output
    assert "1. OK1:M1" in result.output
    assert "2. OK2:M3" in result.output


def test_run_fail_fast_exits_non_zero(fast_workers) -> None:
    result = CliRunner().invoke(async_fanout, ["run", "--policy", "fail-fast", *_OK_FAIL_OK])

    assert result.exit_code != 0
    assert "Aggregate failed: task=1 worker=FAIL cause=WorkerCallError" in result.output
    assert "Dispatch status: failed" in result.output


def test_run_completion_order_lists_every_worker(fast_workers) -> None:
    result = CliRunner().invoke(
        async_fanout,
        [
            "run",
            "--policy",
            "completion-order",
            "--worker",
            "A",
            "--worker",
            "B",
            "--worker",
            "C",
            "--message",
            "msg",
        ],
    )

    assert result.exit_code == 0
    assert "Results: 3" in result.output
    for expected in ("A:MSG", "B:MSG", "C:MSG"):
        assert expected in result.output


def test_run_rejects_mismatched_message_count(fast_workers) -> None:
    result = CliRunner().invoke(
        async_fanout,
        [
            "run",
            "--policy",
            "fail-fast",
            "--worker",
            "A",
            "--worker",
            "B",
            "--worker",
            "C",
            "--message",
            "m1",
            "--message",
            "m2",
        ],
    )

    assert result.exit_code != 0
    assert "Invalid arguments: workers and messages must have the same length" in result.output


def test_run_rejects_unknown_failing_worker(fast_workers) -> None:
    result = CliRunner().invoke(
        async_fanout,
        ["run", "--worker", "A", "--fail-worker", "Z", "--message", "hi"],
    )

    assert result.exit_code != 0
    assert "Unknown --fail-worker label(s): Z" in result.output


def test_run_reports_timeout(clean_env, monkeypatch) -> None:
    monkeypatch.setenv("ASYNC_FANOUT_WORKER_MIN_DELAY_SECONDS", "1")
    monkeypatch.setenv("ASYNC_FANOUT_WORKER_MAX_DELAY_SECONDS", "1")

    result = CliRunner().invoke(
        async_fanout,
        ["run", "--worker", "A", "--message", "hi", "--timeout-seconds", "0.05"],
    )

    assert result.exit_code != 0
    assert "Aggregate timed out after 0.05s" in result.output


def test_run_reports_invalid_configuration(clean_env, monkeypatch) -> None:
    monkeypatch.setenv("ASYNC_FANOUT_AWAIT_TIMEOUT_SECONDS", "-1")

    result = CliRunner().invoke(async_fanout, ["run", "--worker", "A", "--message", "hi"])

    assert result.exit_code != 0
    assert "ASYNC_FANOUT_AWAIT_TIMEOUT_SECONDS must be > 0." in result.output


def test_policies_lists_every_policy() -> None:
    result = CliRunner().invoke(async_fanout, ["policies"])

    assert result.exit_code == 0
    for policy in ("join-all", "completion-order", "fail-fast", "fail-partial", "fail-soft"):
        assert f"{policy}:" in result.output


def test_version_option() -> None:
    result = CliRunner().invoke(async_fanout, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


@pytest.mark.filterwarnings("error::PendingDeprecationWarning")
def test_help_renders_without_deprecation_warnings() -> None:
    result = CliRunner().invoke(async_fanout, ["run", "--help"])

    assert result.exit_code == 0, result.output
    assert "--fail-worker" in result.output
