from taxbinder.config.settings import Settings
from taxbinder.database.connection import close_pool, init_pool
from taxbinder.database.repositories.job_repository import JobRepository
from taxbinder.logging.logger import Log
from taxbinder.pipeline.orchestrator import build_orchestrator
from taxbinder.worker.job_runner import JobRunner
from taxbinder.worker.worker import Worker


def build_worker(settings: Settings) -> Worker:
    orchestrator = build_orchestrator(settings)
    job_repo = JobRepository(settings.max_job_attempts)
    job_runner = JobRunner(orchestrator, job_repo, settings)
    return Worker(job_repo, job_runner, settings)


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        build_worker(settings).run()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
