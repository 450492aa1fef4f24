"""Background thread that executes queued index jobs one at a time."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from grubstars.config.indexing import WorkerConfig
from grubstars.domain.errors import GrubstarsError

if TYPE_CHECKING:
    from grubstars.domain.indexing import IndexingOrchestrator
    from grubstars.domain.jobs import JobService
    from grubstars.domain.model import Job

log = logging.getLogger(__name__)


class IndexWorker:
    """Polls for pending jobs and runs them through the orchestrator.

    The stop flag is only honoured between jobs; a running job always finishes.
    """

    def __init__(
        self,
        jobs: JobService,
        orchestrator: IndexingOrchestrator,
        config: WorkerConfig | None = None,
    ) -> None:
        self._jobs = jobs
        self._orchestrator = orchestrator
        self._config = config or WorkerConfig()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="grubstars-worker", daemon=True)
        self._thread.start()
        log.info("Index worker started")

    def stop(self, timeout: float | None = None) -> bool:
        """Ask the loop to exit and wait for it; return whether it stopped in time."""

        self._stop_event.set()
        thread = self._thread
        if thread is None:
            return True
        thread.join(self._config.shutdown_timeout_seconds if timeout is None else timeout)
        if thread.is_alive():
            log.warning("Index worker still busy after stop request")
            return False
        self._thread = None
        log.info("Index worker stopped")
        return True

    def run_once(self) -> bool:
        """Claim and run at most one job; return whether one was run."""

        job = self._jobs.claim_next()
        if job is None:
            return False
        self._run(job)
        return True

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                worked = self.run_once()
            except GrubstarsError:
                log.exception("Job bookkeeping failed, retrying after poll interval")
                worked = False
            except Exception:
                log.exception("Index worker stopped by an unexpected error")
                raise
            if not worked:
                self._stop_event.wait(self._config.poll_interval_seconds)

    def _run(self, job: Job) -> None:
        log.info("Running job %s for %r", job.id, job.location)
        try:
            stats = self._orchestrator.index(
                job.location,
                job.category,
                on_progress=lambda event: self._jobs.record_progress(job.id, event),
            )
        except GrubstarsError as exc:
            self._jobs.fail(job.id, str(exc))
            return
        except Exception as exc:
            log.exception("Job %s crashed", job.id)
            self._jobs.fail(job.id, f"{type(exc).__name__}: {exc}")
            return
        self._jobs.complete(job.id, stats)
