from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from grubstars.domain.errors import JobNotFoundError, NoProvidersConfiguredError
from grubstars.domain.indexing import ReindexResult
from grubstars.domain.model import BudgetState, Job, JobStatus
from grubstars.ui import cli

if TYPE_CHECKING:
    from collections.abc import Iterator
    from uuid import UUID


@pytest.fixture(autouse=True)
def reset_shutdown_flag() -> Iterator[None]:
    cli._shutdown.clear()  # noqa: SLF001  # type: ignore[reportPrivateUsage]
    yield
    cli._shutdown.clear()  # noqa: SLF001  # type: ignore[reportPrivateUsage]


def test_index_prints_queued_job(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}

    def fake_request_index(location: str, category: str | None = None, **kwargs: object) -> Job:
        captured.update(location=location, category=category, **kwargs)
        return Job(location=location, category=category)

    monkeypatch.setattr(cli, "request_index", fake_request_index)

    cli.main(["index", "Austin, TX", "--category", "pizza", "--force"])

    assert captured == {"location": "Austin, TX", "category": "pizza", "force": True}
    output = json.loads(capsys.readouterr().out)
    assert output["status"] == "pending"
    assert output["location"] == "Austin, TX"


def test_job_prints_status(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    job = Job(location="Austin, TX")
    requested: list[UUID] = []

    def fake_get_job(job_id: UUID) -> Job:
        requested.append(job_id)
        return job

    monkeypatch.setattr(cli, "get_job", fake_get_job)

    cli.main(["job", str(job.id)])

    assert requested == [job.id]
    assert json.loads(capsys.readouterr().out)["id"] == str(job.id)


def test_job_with_invalid_id_exits_with_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["job", "not-a-uuid"])

    assert excinfo.value.code == 2


def test_budget_prints_every_provider(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    started = datetime(2026, 1, 1, tzinfo=UTC)
    states = [
        BudgetState("google", 12, 10_000, started),
        BudgetState("tripadvisor", 3, None, started),
    ]
    monkeypatch.setattr(cli, "budget_snapshot", lambda: states)

    cli.main(["budget"])

    output = json.loads(capsys.readouterr().out)
    assert [entry["provider"] for entry in output] == ["google", "tripadvisor"]
    assert output[0]["remaining"] == 9988
    assert output[1]["remaining"] is None
    assert output[0]["window_started_at"] == "2026-01-01T00:00:00+00:00"


def test_domain_failure_exits_with_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_request_index(*_args: object, **_kwargs: object) -> Job:
        raise NoProvidersConfiguredError

    monkeypatch.setattr(cli, "request_index", failing_request_index)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["index", "Austin, TX"])

    assert excinfo.value.code == 1


def test_worker_once_runs_a_single_job(monkeypatch: pytest.MonkeyPatch) -> None:
    runs: list[str] = []

    class FakeWorker:
        def run_once(self) -> bool:
            runs.append("run")
            return True

    monkeypatch.setattr(cli, "build_worker", FakeWorker)

    cli.main(["worker", "--once"])

    assert runs == ["run"]


def test_index_wait_runs_job_in_process(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    queued = Job(location="Austin, TX")
    finished = Job(location="Austin, TX", id=queued.id)
    finished.status = JobStatus.RUNNING

    class FakeWorker:
        def run_once(self) -> bool:
            finished.status = JobStatus.COMPLETED
            return True

    class FakeJobs:
        def require_job(self, job_id: UUID) -> Job:
            assert job_id == queued.id
            return finished

    monkeypatch.setattr(cli, "request_index", lambda *_args, **_kwargs: queued)
    monkeypatch.setattr(cli, "build_worker", FakeWorker)
    monkeypatch.setattr(cli, "build_job_service", FakeJobs)

    cli.main(["index", "Austin, TX", "--wait"])

    assert json.loads(capsys.readouterr().out)["status"] == "completed"


def test_second_interrupt_exits_immediately() -> None:
    cli.sigint_handler(2, None)
    assert cli._shutdown.is_set()  # noqa: SLF001  # type: ignore[reportPrivateUsage]

    with pytest.raises(SystemExit) as excinfo:
        cli.sigint_handler(2, None)

    assert excinfo.value.code == 130


def test_unknown_job_is_reported(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def missing(job_id: UUID) -> Job:
        raise JobNotFoundError(f"No job with id {job_id}")

    monkeypatch.setattr(cli, "get_job", missing)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["job", str(uuid4())])

    assert excinfo.value.code == 1
    assert capsys.readouterr().out == ""


def test_reindex_prints_refresh_result(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    restaurant_id = uuid4()
    requested: list[UUID] = []

    def fake_reindex(target: UUID) -> ReindexResult:
        requested.append(target)
        return ReindexResult(
            target,
            sources_updated=["yelp"],
            changes={"yelp_rating": {"old": 4.0, "new": 4.5}},
        )

    monkeypatch.setattr(cli, "reindex_restaurant", fake_reindex)

    cli.main(["reindex", str(restaurant_id)])

    assert requested == [restaurant_id]
    output = json.loads(capsys.readouterr().out)
    assert output["sources_updated"] == ["yelp"]
    assert output["changes"] == {"yelp_rating": {"old": 4.0, "new": 4.5}}
    assert output["message"] == "Updated from yelp; 1 field(s) changed"


def test_reindex_with_invalid_id_exits_with_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["reindex", "not-a-uuid"])

    assert excinfo.value.code == 2
